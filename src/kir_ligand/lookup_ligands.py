#! /usr/bin/env python

import argparse
import json
import logging

from .kir_ligand_map import KIRLigandMap
from .lookup_ligands_lib import LookupInput, LookupResult
from .utils import KIRLigandError

logging.basicConfig()
logger: logging.Logger = logging.getLogger(__name__)


def main():
    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        "Look up the KIR ligand classifications of HLA class I alleles"
    )
    parser.add_argument(
        "infile",
        type=argparse.FileType("r"),
        help='Input file containing the JSON input (use "-" to read from stdin)',
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="count",
        default=0,
        help="Output status messages (and debug messages if -vv is used)",
    )
    args: argparse.Namespace = parser.parse_args()

    if args.verbose == 1:
        logger.setLevel(logging.INFO)
    elif args.verbose > 1:
        logger.setLevel(logging.DEBUG)

    with args.infile:
        lookup_input: LookupInput = LookupInput(**json.load(args.infile))

    errors: list[str] = lookup_input.check_inputs()
    if len(errors) > 0:
        print(LookupResult(errors=errors).model_dump_json())
        return

    try:
        ligand_map: KIRLigandMap = KIRLigandMap.build(
            lookup_input.queries(), logger=logger
        )
    except KIRLigandError as e:
        logger.error(str(e))
        print(LookupResult(errors=[str(e)]).model_dump_json())
        return

    print(
        LookupResult.build_from_map(lookup_input.alleles, ligand_map).model_dump_json()
    )


if __name__ == "__main__":
    main()
