"""
PrimerWeaver

Primer design for overlap (Gibson style) and uracil-excision (USER style)
cloning: melting temperature and secondary structure, restriction digestion
of circular vectors, primer core selection and junction assembly.
"""

__version__ = "1.0.0"
