import re
from typing import Final, Literal

HLA_LOCUS = Literal["A", "B", "C"]

GENE_LOCI: Final[tuple[HLA_LOCUS, HLA_LOCUS, HLA_LOCUS]] = ("A", "B", "C")

# Placeholder emitted for every ligand field of an allele that has no KIR
# ligand classification.
NOT_AVAILABLE: Final[str] = "NA"


class KIRLigandError(Exception):
    pass


class NomenclatureError(KIRLigandError):
    def __init__(self, raw_text: str):
        super().__init__(raw_text)
        self.raw_text = raw_text


class UnknownLigandMotif(NomenclatureError):
    def __str__(self):
        return f'Unknown KIR ligand motif "{self.raw_text}"'


class InvalidAlleleException(NomenclatureError):
    def __str__(self):
        return f'Could not parse "{self.raw_text}" into an HLA class I allele'


class InvalidQueryException(KIRLigandError):
    def __init__(self, query: str):
        super().__init__(query)
        self.query = query

    def __str__(self):
        return f'"{self.query}" is not a valid IPD-KIR ligand query'


class TransportFailure(KIRLigandError):
    def __init__(self, url: str, reason: str):
        super().__init__(url, reason)
        self.url = url
        self.reason = reason

    def __str__(self):
        return f"Failed to retrieve {self.url}: {self.reason}"


class TableExtractionError(KIRLigandError):
    pass


class UnexpectedRowShape(TableExtractionError):
    def __init__(self, count: int, raw_text: str):
        super().__init__(count, raw_text)
        self.count = count
        self.raw_text = raw_text

    def __str__(self):
        return (
            f'Expected 3 columns but found {self.count} in row "{self.raw_text}"'
        )


class UnparseableAllele(TableExtractionError):
    def __init__(self, raw_text: str):
        super().__init__(raw_text)
        self.raw_text = raw_text

    def __str__(self):
        return f'Could not read HLA class I allele from "{self.raw_text}"'


class UnparseableMotif(TableExtractionError):
    def __init__(self, raw_text: str):
        super().__init__(raw_text)
        self.raw_text = raw_text

    def __str__(self):
        return f'Could not read KIR ligand motif from "{self.raw_text}"'


def allele_coordinates(allele: str, digits_only: bool = False) -> list[str]:
    """
    Convert an allele string into a list of coordinates.

    For example, allele "A*01:23:45N" gets converted to
    ["A*01", "23", "45N"] or ["01", "23", "45"] depending on the value of
    digits_only.
    """
    clean_allele_str: str = allele
    if digits_only:
        clean_allele_str = re.sub(r"[^\d:]", "", allele)
    return clean_allele_str.strip().split(":")
