from .kir_ligand_map import KIRLigandMap
from .models import (
    AlleleFreq,
    HLAClassIAllele,
    LigandMotif,
    LigandRecord,
    LigandResult,
    classify_frequency,
    parse_motif,
)

__all__ = [
    "AlleleFreq",
    "HLAClassIAllele",
    "KIRLigandMap",
    "LigandMotif",
    "LigandRecord",
    "LigandResult",
    "classify_frequency",
    "parse_motif",
]
