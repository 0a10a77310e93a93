from pydantic import BaseModel, ConfigDict


def to_camel(string: str) -> str:
    parts = string.split('_')
    return parts[0] + ''.join(word.capitalize() for word in parts[1:])


class SequenceRecord(BaseModel):
    """A named nucleotide sequence, already normalized to IUPAC DNA."""
    name: str = "sequence"
    sequence: str
    circular: bool = False

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True
    )

    @property
    def length(self) -> int:
        return len(self.sequence)


class FastaEntry(BaseModel):
    name: str
    sequence: str
