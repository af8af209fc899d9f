import logging
from collections.abc import Iterable, Mapping, Sequence
from types import MappingProxyType
from typing import Optional

from bs4 import BeautifulSoup

from .models import HLAClassIAllele, LigandRecord, LigandResult
from .retrieve_ligands_lib import (
    IPD_KIR_URL,
    SKIP_ROWS,
    get_ipd_text,
    parse_document,
    read_table,
)


class KIRLigandMap:
    """
    Lookup table from HLA class I alleles to their KIR ligand records.

    If an allele appears more than once in the records used to build this
    (e.g. because overlapping loci were queried), the last record wins.
    """

    def __init__(self, records: Iterable[LigandRecord] = ()):
        alleles: set[HLAClassIAllele] = set()
        cache: dict[HLAClassIAllele, LigandRecord] = {}
        for record in records:
            alleles.add(record.allele)
            cache[record.allele] = record

        self._alleles: frozenset[HLAClassIAllele] = frozenset(alleles)
        self._cache: Mapping[HLAClassIAllele, LigandRecord] = MappingProxyType(
            cache
        )

    @classmethod
    def build(
        cls,
        loci: Sequence[str],
        base_url: str = IPD_KIR_URL,
        logger: Optional[logging.Logger] = None,
    ) -> "KIRLigandMap":
        """
        Build a map from the IPD-KIR ligand tables of the specified loci.

        Loci are retrieved one at a time, in order, and each query string is
        sent as given.  The first locus that can't be retrieved or whose table
        can't be read raises immediately; the remaining loci are not
        retrieved, and no map is produced.
        """
        records: list[LigandRecord] = []
        for locus in loci:
            if logger is not None:
                logger.info(f'Retrieving KIR ligands for "{locus}"....')
            html: str = get_ipd_text(locus, base_url)
            document: BeautifulSoup = parse_document(html)
            locus_records: list[LigandRecord] = read_table(
                document, SKIP_ROWS, logger
            )
            records.extend(locus_records)

        return cls(records)

    @property
    def alleles(self) -> frozenset[HLAClassIAllele]:
        return self._alleles

    @property
    def cache(self) -> Mapping[HLAClassIAllele, LigandRecord]:
        return self._cache

    def __len__(self) -> int:
        return len(self._alleles)

    def lookup(self, allele: HLAClassIAllele) -> Optional[LigandRecord]:
        if allele not in self._alleles:
            return None
        return self._cache.get(allele)

    def get_ligand_result(self, allele: HLAClassIAllele) -> LigandResult:
        return LigandResult.build_from_record(str(allele), self.lookup(allele))

    def to_records(self) -> list[LigandRecord]:
        return sorted(
            self._cache.values(), key=lambda record: record.allele.sort_key()
        )
