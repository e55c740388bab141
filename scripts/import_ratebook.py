"""
Import a provider ratebook CSV from the command line.
"""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path

from app.config import get_logging_settings, get_matching_settings, get_ratebook_import_settings
from app.domain.errors import DuplicateRatebookError, RatebookImportError
from app.providers import available_providers
from app.services.ratebook_import_service import RatebookImportService, result_to_dict
from db.session import SessionLocal


def main() -> int:
    parser = argparse.ArgumentParser(description="Import a provider ratebook file.")
    parser.add_argument("path", type=Path, help="Path to the ratebook CSV.")
    parser.add_argument(
        "--provider",
        required=True,
        choices=available_providers(),
        help="Provider code.",
    )
    parser.add_argument(
        "--contract-type",
        dest="contract_type",
        required=True,
        help="CH, CHNM, PCH, PCHNM or BSSNL.",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, get_logging_settings().level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    service = RatebookImportService(
        settings=get_ratebook_import_settings(),
        matching_settings=get_matching_settings(),
    )
    content = args.path.read_bytes()
    with SessionLocal() as db:
        try:
            result = service.import_ratebook(
                db=db,
                content=content,
                file_name=args.path.name,
                provider_code=args.provider,
                contract_type=args.contract_type,
            )
        except DuplicateRatebookError as exc:
            print(json.dumps({"success": False, "duplicate": True, "error": str(exc)}, indent=2))
            return 2
        except RatebookImportError as exc:
            print(json.dumps({"success": False, "error": str(exc)}, indent=2))
            return 1

    print(json.dumps(result_to_dict(result), indent=2))
    return 0 if result.success else 1


if __name__ == "__main__":
    raise SystemExit(main())
