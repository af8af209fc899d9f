import logging
import os
from datetime import datetime
from typing import Final, Optional

import requests
from bs4 import BeautifulSoup
from bs4.element import Tag
from pydantic import BaseModel

from .models import (
    HLAClassIAllele,
    LigandMotif,
    LigandRecord,
    classify_frequency,
    parse_motif,
)
from .utils import (
    InvalidAlleleException,
    InvalidQueryException,
    TransportFailure,
    UnexpectedRowShape,
    UnknownLigandMotif,
    UnparseableAllele,
    UnparseableMotif,
)

# The query string is appended directly to this URL, e.g.
# https://www.ebi.ac.uk/cgi-bin/ipd/kir/retrieve_ligands.cgi?C*01:02
IPD_KIR_URL: Final[str] = os.environ.get(
    "KIR_LIGAND_IPD_URL",
    "https://www.ebi.ac.uk/cgi-bin/ipd/kir/retrieve_ligands.cgi?",
)
REQUEST_TIMEOUT: Final[float] = float(
    os.environ.get("KIR_LIGAND_REQUEST_TIMEOUT", "60")
)

# The first row of the ligand table is its header.
SKIP_ROWS: Final[int] = 1
ROW_SELECTOR: Final[str] = "tr"
COLUMN_COUNT: Final[int] = 3


def clean_query(query: str) -> str:
    """
    Prepare a locus or allele for querying IPD-KIR.

    An "HLA-" prefix is removed.  What remains must either be a bare locus
    ("A", "B", or "C"), or something allele-like: a short prefix such as
    "C*0" or a string containing both "*" and ":".
    """
    non_prefix_query: str = query.strip().removeprefix("HLA-")
    if len(non_prefix_query) == 1:
        if non_prefix_query in ("A", "B", "C"):
            return non_prefix_query
    elif "*" in non_prefix_query and (
        len(non_prefix_query) <= 3 or ":" in non_prefix_query
    ):
        return non_prefix_query
    raise InvalidQueryException(query)


def get_ipd_text(
    query: str,
    base_url: str = IPD_KIR_URL,
    timeout: float = REQUEST_TIMEOUT,
) -> str:
    """
    Retrieve the raw ligand page from IPD-KIR for the specified query.
    """
    url: str = f"{base_url}{query}"
    try:
        response: requests.Response = requests.get(url, timeout=timeout)
    except requests.RequestException as e:
        raise TransportFailure(url, str(e)) from e

    if response.status_code != requests.codes.ok:
        raise TransportFailure(url, f"HTTP status {response.status_code}")

    try:
        return response.content.decode(response.encoding or "utf-8")
    except (UnicodeDecodeError, LookupError) as e:
        raise TransportFailure(url, f"unreadable response ({e})") from e


def parse_document(html: str) -> BeautifulSoup:
    # html5lib closes the <tr>/<td> end tags that older CGI output leaves out.
    return BeautifulSoup(html, "html5lib")


def row_fragments(row: Tag) -> list[str]:
    """
    The text fragments of a table row, in document order.

    Whitespace directly inside the row (indentation between cells) is not
    included; text inside a cell always is, even if it is only whitespace.
    """
    return [
        str(fragment)
        for fragment in row.strings
        if not (fragment.parent is row and fragment.strip() == "")
    ]


def read_row(fragments: list[str]) -> LigandRecord:
    """
    Build a ligand record from the (allele, motif, frequency) columns of a row.
    """
    try:
        allele: HLAClassIAllele = HLAClassIAllele.from_string(fragments[0])
    except InvalidAlleleException as e:
        raise UnparseableAllele(fragments[0]) from e

    try:
        motif: LigandMotif = parse_motif(fragments[1])
    except UnknownLigandMotif as e:
        raise UnparseableMotif(fragments[1]) from e

    return LigandRecord(
        allele=allele,
        motif=motif,
        freq=classify_frequency(fragments[2]),
    )


def read_table(
    document: BeautifulSoup,
    skip_rows: int,
    logger: Optional[logging.Logger] = None,
) -> list[LigandRecord]:
    """
    Read every ligand record out of the table rows of the document.

    The first skip_rows rows are headers and are ignored.  Every other row
    must have exactly three columns: allele, motif, and frequency.  Any row
    that doesn't, or whose allele or motif can't be read, means the table
    isn't in the format we expect, so we raise rather than return a partial
    result.
    """
    rows: list[Tag] = document.select(ROW_SELECTOR)[skip_rows:]
    if logger is not None:
        logger.info(f"Reading {len(rows)} rows from the ligand table....")

    records: list[LigandRecord] = []
    for row in rows:
        fragments: list[str] = row_fragments(row)
        if len(fragments) != COLUMN_COUNT:
            raise UnexpectedRowShape(len(fragments), row.get_text())
        records.append(read_row(fragments))

    if logger is not None:
        logger.info(f"Finished reading table ({len(records)} records).")
    return records


class StoredLigandRecord(BaseModel):
    allele: str
    motif: str
    freq: str

    @classmethod
    def from_record(cls, record: LigandRecord) -> "StoredLigandRecord":
        return cls(
            allele=str(record.allele),
            motif=str(record.motif),
            freq=str(record.freq),
        )


class StoredLigandTable(BaseModel):
    """
    A snapshot of the ligand table as retrieved from IPD-KIR.
    """

    url: str
    loci: list[str]
    retrieved: datetime
    records: list[StoredLigandRecord]
