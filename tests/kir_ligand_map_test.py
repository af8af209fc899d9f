from unittest.mock import MagicMock

import pytest
from pytest_mock import MockerFixture

from kir_ligand import kir_ligand_map
from kir_ligand.kir_ligand_map import KIRLigandMap
from kir_ligand.models import (
    AlleleFreq,
    HLAClassIAllele,
    LigandMotif,
    LigandRecord,
    LigandResult,
)
from kir_ligand.utils import (
    TransportFailure,
    UnexpectedRowShape,
    UnparseableMotif,
)


def ligand_page(*rows: tuple[str, str, str]) -> str:
    body: str = "".join(
        f"<tr><td>{allele}</td><td>{motif}</td><td>{freq}</td></tr>"
        for allele, motif, freq in rows
    )
    return (
        "<html><body><table>"
        "<tr><th>Allele</th><th>Ligand</th><th>Frequency</th></tr>"
        f"{body}</table></body></html>"
    )


def record(allele: str, motif: LigandMotif, freq: AlleleFreq) -> LigandRecord:
    return LigandRecord(
        allele=HLAClassIAllele.from_string(allele), motif=motif, freq=freq
    )


A0201: HLAClassIAllele = HLAClassIAllele.from_string("A*02:01")
A1101: HLAClassIAllele = HLAClassIAllele.from_string("A*11:01")
B5701: HLAClassIAllele = HLAClassIAllele.from_string("B*57:01")
C0102: HLAClassIAllele = HLAClassIAllele.from_string("C*01:02")


class TestInit:
    def test_empty(self):
        ligand_map: KIRLigandMap = KIRLigandMap()
        assert len(ligand_map) == 0
        assert ligand_map.alleles == frozenset()
        assert dict(ligand_map.cache) == {}
        assert ligand_map.lookup(A0201) is None

    def test_distinct_alleles(self):
        records: list[LigandRecord] = [
            record("A*02:01", LigandMotif.BW6, AlleleFreq.COMMON),
            record("B*57:01", LigandMotif.BW4_80I, AlleleFreq.COMMON),
        ]
        ligand_map: KIRLigandMap = KIRLigandMap(records)
        assert ligand_map.alleles == frozenset({A0201, B5701})
        assert dict(ligand_map.cache) == {A0201: records[0], B5701: records[1]}

    def test_last_write_wins(self):
        first: LigandRecord = record("C*01:02", LigandMotif.C1, AlleleFreq.COMMON)
        second: LigandRecord = record("C*01:02", LigandMotif.C2, AlleleFreq.RARE)
        ligand_map: KIRLigandMap = KIRLigandMap([first, second])
        assert ligand_map.alleles == frozenset({C0102})
        assert ligand_map.lookup(C0102) == second

    def test_alleles_and_cache_agree(self):
        ligand_map: KIRLigandMap = KIRLigandMap(
            [
                record("C*01:02", LigandMotif.C1, AlleleFreq.COMMON),
                record("A*02:01", LigandMotif.BW6, AlleleFreq.COMMON),
                record("C*01:02", LigandMotif.C1, AlleleFreq.RARE),
            ]
        )
        assert ligand_map.alleles == frozenset(ligand_map.cache.keys())
        assert len(ligand_map) == 2

    def test_cache_is_read_only(self):
        ligand_map: KIRLigandMap = KIRLigandMap(
            [record("C*01:02", LigandMotif.C1, AlleleFreq.COMMON)]
        )
        with pytest.raises(TypeError):
            ligand_map.cache[A0201] = record(  # type: ignore
                "A*02:01", LigandMotif.BW6, AlleleFreq.COMMON
            )


class TestLookup:
    @pytest.fixture
    def ligand_map(self) -> KIRLigandMap:
        return KIRLigandMap(
            [
                record("C*01:02", LigandMotif.C1, AlleleFreq.COMMON),
                record("B*57:01", LigandMotif.BW4_80I, AlleleFreq.RARE),
            ]
        )

    def test_known_allele(self, ligand_map: KIRLigandMap):
        assert ligand_map.lookup(C0102) == record(
            "C*01:02", LigandMotif.C1, AlleleFreq.COMMON
        )

    def test_same_allele_different_spelling(self, ligand_map: KIRLigandMap):
        assert ligand_map.lookup(
            HLAClassIAllele.from_string("HLA-C01:02")
        ) == record("C*01:02", LigandMotif.C1, AlleleFreq.COMMON)

    @pytest.mark.parametrize(
        "allele_str",
        [
            pytest.param("A*02:01", id="absent_allele"),
            pytest.param("C*01:02:01", id="different_resolution"),
            pytest.param("C*01:02N", id="different_suffix"),
        ],
    )
    def test_unknown_allele(self, ligand_map: KIRLigandMap, allele_str: str):
        assert ligand_map.lookup(HLAClassIAllele.from_string(allele_str)) is None

    def test_get_ligand_result_known(self, ligand_map: KIRLigandMap):
        assert ligand_map.get_ligand_result(B5701) == LigandResult(
            allele="B*57:01",
            kir_ligand_allele="B*57:01",
            kir_ligand_motif="Bw4-80I",
            kir_ligand_freq="Rare",
        )

    def test_get_ligand_result_unknown(self, ligand_map: KIRLigandMap):
        assert ligand_map.get_ligand_result(A0201) == LigandResult(
            allele="A*02:01",
            kir_ligand_allele="NA",
            kir_ligand_motif="NA",
            kir_ligand_freq="NA",
        )

    def test_to_records(self, ligand_map: KIRLigandMap):
        assert ligand_map.to_records() == [
            record("B*57:01", LigandMotif.BW4_80I, AlleleFreq.RARE),
            record("C*01:02", LigandMotif.C1, AlleleFreq.COMMON),
        ]


class TestBuild:
    def test_single_locus(self, mocker: MockerFixture):
        get_ipd_text_mock: MagicMock = mocker.patch.object(
            kir_ligand_map,
            "get_ipd_text",
            return_value=ligand_page(
                ("C*01:02:01:01", "C1", "Common"),
                ("C*02:02:02:01", "C2", "Rare"),
            ),
        )
        ligand_map: KIRLigandMap = KIRLigandMap.build(
            ["C"], "http://example.org/ligands?"
        )
        get_ipd_text_mock.assert_called_once_with("C", "http://example.org/ligands?")
        assert ligand_map.to_records() == [
            record("C*01:02:01:01", LigandMotif.C1, AlleleFreq.COMMON),
            record("C*02:02:02:01", LigandMotif.C2, AlleleFreq.RARE),
        ]

    def test_overlapping_loci_last_write_wins(self, mocker: MockerFixture):
        pages: list[str] = [
            ligand_page(("A*02:01", "Bw6", "Common")),
            ligand_page(("B*57:01", "Bw4-80I", "Common")),
            ligand_page(("C*01:02", "C1", "Common")),
            ligand_page(("C*01:02", "C01", "Rare")),
            ligand_page(
                ("A*02:01", "Unclassified", "Rare"),
                ("A*11:01", "A11", "Common"),
            ),
        ]
        get_ipd_text_mock: MagicMock = mocker.patch.object(
            kir_ligand_map, "get_ipd_text", side_effect=pages
        )
        ligand_map: KIRLigandMap = KIRLigandMap.build(["A", "B", "C", "C", "A"])

        assert [x.args[0] for x in get_ipd_text_mock.call_args_list] == [
            "A",
            "B",
            "C",
            "C",
            "A",
        ]
        assert ligand_map.alleles == frozenset({A0201, A1101, B5701, C0102})
        assert ligand_map.lookup(A0201) == record(
            "A*02:01", LigandMotif.UNCLASSIFIED, AlleleFreq.RARE
        )
        assert ligand_map.lookup(B5701) == record(
            "B*57:01", LigandMotif.BW4_80I, AlleleFreq.COMMON
        )
        assert ligand_map.lookup(C0102) == record(
            "C*01:02", LigandMotif.C1, AlleleFreq.RARE
        )
        assert ligand_map.lookup(A1101) == record(
            "A*11:01", LigandMotif.A11, AlleleFreq.COMMON
        )

    def test_no_loci(self, mocker: MockerFixture):
        get_ipd_text_mock: MagicMock = mocker.patch.object(
            kir_ligand_map, "get_ipd_text"
        )
        ligand_map: KIRLigandMap = KIRLigandMap.build([])
        get_ipd_text_mock.assert_not_called()
        assert len(ligand_map) == 0

    def test_transport_failure_stops_build(self, mocker: MockerFixture):
        get_ipd_text_mock: MagicMock = mocker.patch.object(
            kir_ligand_map,
            "get_ipd_text",
            side_effect=[
                ligand_page(("A*02:01", "Bw6", "Common")),
                TransportFailure("http://example.org/ligands?B", "HTTP status 500"),
                ligand_page(("C*01:02", "C1", "Common")),
            ],
        )
        with pytest.raises(TransportFailure):
            KIRLigandMap.build(["A", "B", "C"])
        assert get_ipd_text_mock.call_count == 2

    def test_bad_table_stops_build(self, mocker: MockerFixture):
        get_ipd_text_mock: MagicMock = mocker.patch.object(
            kir_ligand_map,
            "get_ipd_text",
            side_effect=[
                ligand_page(("A*02:01", "Bw6", "Common")),
                "<table><tr><th>Header</th></tr>"
                "<tr><td>B*57:01</td><td>Bw4-80I</td></tr></table>",
                ligand_page(("C*01:02", "C1", "Common")),
            ],
        )
        with pytest.raises(UnexpectedRowShape) as e:
            KIRLigandMap.build(["A", "B", "C"])
        assert e.value.count == 2
        assert get_ipd_text_mock.call_count == 2

    def test_bad_motif_stops_build(self, mocker: MockerFixture):
        mocker.patch.object(
            kir_ligand_map,
            "get_ipd_text",
            return_value=ligand_page(("C*01:02", "C7", "Common")),
        )
        with pytest.raises(UnparseableMotif) as e:
            KIRLigandMap.build(["C"])
        assert e.value.raw_text == "C7"

    def test_logging(self, mocker: MockerFixture):
        mocker.patch.object(
            kir_ligand_map,
            "get_ipd_text",
            return_value=ligand_page(("C*01:02", "C1", "Common")),
        )
        mock_logger: MagicMock = mocker.MagicMock()
        KIRLigandMap.build(["C*01:02"], logger=mock_logger)
        mock_logger.info.assert_has_calls(
            [
                mocker.call('Retrieving KIR ligands for "C*01:02"....'),
                mocker.call("Reading 1 rows from the ligand table...."),
                mocker.call("Finished reading table (1 records)."),
            ],
            any_order=False,
        )
