import re
from enum import Enum
from typing import Final, Optional

from pydantic import BaseModel, ConfigDict

from .utils import (
    HLA_LOCUS,
    NOT_AVAILABLE,
    InvalidAlleleException,
    UnknownLigandMotif,
    allele_coordinates,
)

# Accepts e.g. "C*01:02:01:01", "HLA-B*57:01", "A*24:09N" and the unstarred
# form "C01:02:01:01".
ALLELE_PATTERN: Final[re.Pattern] = re.compile(
    r"(?:HLA-)?(?P<locus>[ABC])\*?"
    r"(?P<coordinates>\d{2,4}(?::\d{2,4}){0,3})"
    r"(?P<suffix>[NLSCAQ]?)"
)


class HLAClassIAllele(BaseModel):
    """
    An HLA class I allele at any resolution from one to four fields.
    """

    # Allows this to be hashable:
    model_config = ConfigDict(frozen=True)

    locus: HLA_LOCUS
    coordinates: tuple[str, ...]
    suffix: str = ""

    @classmethod
    def from_string(cls, allele_str: str) -> "HLAClassIAllele":
        match: Optional[re.Match] = ALLELE_PATTERN.fullmatch(allele_str.strip())
        if match is None:
            raise InvalidAlleleException(allele_str)
        return cls(
            locus=match.group("locus"),
            coordinates=tuple(allele_coordinates(match.group("coordinates"))),
            suffix=match.group("suffix"),
        )

    def integer_coordinates(self) -> tuple[int, ...]:
        return tuple(int(coord) for coord in allele_coordinates(str(self), True))

    def sort_key(self) -> tuple[str, tuple[int, ...], str]:
        return (self.locus, self.integer_coordinates(), self.suffix)

    def __str__(self):
        return f"{self.locus}*{':'.join(self.coordinates)}{self.suffix}"


class LigandMotif(str, Enum):
    """KIR ligand motifs reported by IPD-KIR."""

    A11 = "A11"
    A3 = "A3"
    BW4_80T = "Bw4-80T"
    BW4_80I = "Bw4-80I"
    BW6 = "Bw6"
    C1 = "C1"
    C2 = "C2"
    UNCLASSIFIED = "Unclassified"

    def __str__(self):
        return self.value


# Canonical motif names plus the zero-padded names used by older releases.
MOTIF_TOKENS: Final[dict[str, LigandMotif]] = {
    **{motif.value: motif for motif in LigandMotif},
    "A03": LigandMotif.A3,
    "C01": LigandMotif.C1,
    "C02": LigandMotif.C2,
}


class AlleleFreq(str, Enum):
    RARE = "Rare"
    COMMON = "Common"
    UNKNOWN = "Unknown"

    def __str__(self):
        return self.value


def parse_motif(motif_str: str) -> LigandMotif:
    """
    Read a KIR ligand motif from its published name.

    All whitespace is removed before the name is looked up; anything that is
    not a known motif name raises UnknownLigandMotif.
    """
    normalized: str = "".join(motif_str.split())
    motif: Optional[LigandMotif] = MOTIF_TOKENS.get(normalized)
    if motif is None:
        raise UnknownLigandMotif(normalized)
    return motif


def classify_frequency(freq_str: str) -> AlleleFreq:
    """
    Classify the free-text frequency column of the ligand table.

    This never fails: any text that isn't recognizably "Common" or "Rare"
    is Unknown.  Notes are sometimes appended to "Common", so that one is a
    substring check, and it takes priority.
    """
    trimmed: str = freq_str.strip()
    if "Common" in trimmed:
        return AlleleFreq.COMMON
    if trimmed == "Rare":
        return AlleleFreq.RARE
    return AlleleFreq.UNKNOWN


class LigandRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    allele: HLAClassIAllele
    motif: LigandMotif
    freq: AlleleFreq

    def __str__(self):
        return (
            f"HLA: {self.allele}, LigandGroup: {self.motif}, Frequency: {self.freq}"
        )


class LigandResult(BaseModel):
    """
    The KIR ligand fields reported for one queried allele.

    If no classification exists for the allele, every kir_ligand_* field is
    "NA".
    """

    allele: str
    kir_ligand_allele: str = NOT_AVAILABLE
    kir_ligand_motif: str = NOT_AVAILABLE
    kir_ligand_freq: str = NOT_AVAILABLE

    @classmethod
    def build_from_record(
        cls, allele: str, record: Optional[LigandRecord]
    ) -> "LigandResult":
        if record is None:
            return cls(allele=allele)
        return cls(
            allele=allele,
            kir_ligand_allele=str(record.allele),
            kir_ligand_motif=str(record.motif),
            kir_ligand_freq=str(record.freq),
        )
