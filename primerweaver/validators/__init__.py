from .protocol_validator import ProtocolValidator

__all__ = ["ProtocolValidator"]
