from pathlib import Path
BASE_DIR = Path(__file__).resolve().parent
ENZYME_TABLE = str(BASE_DIR.parent / "data" / "enzymes.json")

CONFIG = {
    "development": {
        "verbose_mode": True,
        "enzyme_table": ENZYME_TABLE,
        "design": {
            "method": "standard",
            "target_tm": 60.0,
            "tm_tolerance": 2.5,
            "na_mM": 50.0,
            "mg_mM": 0.0,
            "primer_conc_nM": 500.0,
            "overlap_length": 25,
            "uracil_overlap_length": 9,
            "overlap_tm": 50.0,
            "min_core_length": 18,
            "max_core_length": 40,
            "default_core_length": 20,
            "search_radius": 25,
            "clamp_length": 5,
            "max_sequence_length": 200000
        }
    },
    "testing": {
        "verbose_mode": True,
        "enzyme_table": ENZYME_TABLE,
        "design": {
            "method": "standard",
            "target_tm": 60.0,
            "tm_tolerance": 2.5,
            "na_mM": 50.0,
            "mg_mM": 0.0,
            "primer_conc_nM": 500.0,
            "overlap_length": 25,
            "uracil_overlap_length": 9,
            "overlap_tm": 50.0,
            "min_core_length": 18,
            "max_core_length": 40,
            "default_core_length": 20,
            "search_radius": 25,
            "clamp_length": 5,
            "max_sequence_length": 20000
        }
    },
    "production": {
        "verbose_mode": False,
        "enzyme_table": ENZYME_TABLE,
        "design": {
            "method": "standard",
            "target_tm": 60.0,
            "tm_tolerance": 2.5,
            "na_mM": 50.0,
            "mg_mM": 0.0,
            "primer_conc_nM": 500.0,
            "overlap_length": 25,
            "uracil_overlap_length": 9,
            "overlap_tm": 50.0,
            "min_core_length": 18,
            "max_core_length": 40,
            "default_core_length": 20,
            "search_radius": 25,
            "clamp_length": 5,
            "max_sequence_length": 200000
        }
    }
}
