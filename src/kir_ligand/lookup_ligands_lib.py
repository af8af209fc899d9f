from pydantic import BaseModel, Field

from ._version import __version__
from .kir_ligand_map import KIRLigandMap
from .models import HLAClassIAllele, LigandResult
from .retrieve_ligands_lib import clean_query
from .utils import GENE_LOCI, InvalidAlleleException, InvalidQueryException


class LookupInput(BaseModel):
    alleles: list[str]
    loci: list[str] = Field(default_factory=lambda: list(GENE_LOCI))

    def check_inputs(self) -> list[str]:
        errors: list[str] = []
        if len(self.alleles) == 0:
            errors.append("No alleles to look up")
        for allele in self.alleles:
            try:
                HLAClassIAllele.from_string(allele)
            except InvalidAlleleException as e:
                errors.append(str(e))
        if len(self.loci) == 0:
            errors.append("No loci to retrieve ligands for")
        for locus in self.loci:
            try:
                clean_query(locus)
            except InvalidQueryException as e:
                errors.append(str(e))
        return errors

    def queries(self) -> list[str]:
        return [clean_query(locus) for locus in self.loci]


class LookupResult(BaseModel):
    results: list[LigandResult] = Field(default_factory=list)
    alg_version: str = __version__
    errors: list[str] = Field(default_factory=list)

    @classmethod
    def build_from_map(
        cls, alleles: list[str], ligand_map: KIRLigandMap
    ) -> "LookupResult":
        results: list[LigandResult] = []
        for allele in alleles:
            record = ligand_map.lookup(HLAClassIAllele.from_string(allele))
            results.append(LigandResult.build_from_record(allele, record))
        return cls(results=results)
