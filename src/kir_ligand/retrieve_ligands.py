#! /usr/bin/env python

import argparse
import logging
import sys
from datetime import datetime

import yaml

from .kir_ligand_map import KIRLigandMap
from .retrieve_ligands_lib import (
    IPD_KIR_URL,
    StoredLigandRecord,
    StoredLigandTable,
    clean_query,
)
from .utils import GENE_LOCI, InvalidQueryException, KIRLigandError

logging.basicConfig()
logger: logging.Logger = logging.getLogger(__name__)


def main():
    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        "Retrieve HLA class I KIR ligand classifications from IPD-KIR."
    )
    parser.add_argument(
        "loci",
        help=(
            "loci (A, B, C) or alleles (e.g. C*01:02) to retrieve ligands for; "
            "defaults to all of A, B, and C"
        ),
        type=str,
        nargs="*",
        default=list(GENE_LOCI),
    )
    parser.add_argument(
        "--output",
        help="filename to store the retrieved ligand table in (YAML format)",
        type=str,
        default="kir_ligands.yaml",
    )
    parser.add_argument(
        "--url",
        help="IPD-KIR ligand query URL; the query is appended to it",
        type=str,
        default=IPD_KIR_URL,
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="count",
        default=0,
        help="Output status messages (and debug messages if -vv is used)",
    )
    args = parser.parse_args()

    if args.verbose == 1:
        logger.setLevel(logging.INFO)
    elif args.verbose > 1:
        logger.setLevel(logging.DEBUG)

    try:
        queries: list[str] = [clean_query(locus) for locus in args.loci]
    except InvalidQueryException as e:
        parser.error(str(e))

    logger.info(f"Retrieving KIR ligands for {', '.join(queries)}....")
    retrieval_datetime: datetime = datetime.now()
    try:
        ligand_map: KIRLigandMap = KIRLigandMap.build(queries, args.url, logger)
    except KIRLigandError as e:
        logger.error(str(e))
        sys.exit(1)
    logger.info(f"Retrieved {len(ligand_map)} alleles at {retrieval_datetime}.")

    stored_table: StoredLigandTable = StoredLigandTable(
        url=args.url,
        loci=queries,
        retrieved=retrieval_datetime,
        records=[
            StoredLigandRecord.from_record(record)
            for record in ligand_map.to_records()
        ],
    )

    logger.info(f"Writing KIR ligand table to {args.output}....")
    with open(args.output, "w") as f:
        yaml.safe_dump(stored_table.model_dump(), f)

    print(
        f"Retrieved KIR ligands for {len(ligand_map)} alleles "
        f"({', '.join(queries)}); written to {args.output}."
    )
    logger.info("Done.")


if __name__ == "__main__":
    main()
