# src/credenciales/service/folio_import.py
"""
Back-fill folios from the legacy CSV export.

The export has a header row; the folio is the first column and the
license number the tenth. Members are matched by license number and only
those without a folio are touched.

    python -m credenciales.service.folio_import olddb.csv
"""
import argparse
import asyncio
import csv
import logging
from dataclasses import dataclass, field
from typing import Iterable

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from credenciales.core.config import get_settings
from credenciales.core.db import Database
from credenciales.crud.member import FOLIO_WIDTH
from credenciales.models.member import Member

logger = logging.getLogger(__name__)

FOLIO_COLUMN = 0
LICENSE_COLUMN = 9


@dataclass
class FolioImportReport:
    updated: int = 0
    skipped: int = 0
    errors: list[str] = field(default_factory=list)


def parse_folio_rows(lines: Iterable[str], report: FolioImportReport) -> list[tuple[str, str]]:
    rows = []
    reader = csv.reader(lines)
    next(reader, None)
    for line_no, fields in enumerate(reader, start=2):
        if not any(f.strip() for f in fields):
            continue
        if len(fields) <= LICENSE_COLUMN:
            report.errors.append(f"line {line_no}: expected at least {LICENSE_COLUMN + 1} columns")
            continue
        folio = fields[FOLIO_COLUMN].strip()
        license_number = fields[LICENSE_COLUMN].strip()
        if not folio or not license_number:
            report.skipped += 1
            continue
        rows.append((folio, license_number))
    return rows


async def populate_folios(db: AsyncSession, lines: Iterable[str]) -> FolioImportReport:
    report = FolioImportReport()
    rows = parse_folio_rows(lines, report)

    result = await db.execute(select(Member))
    by_license = {m.license_number: m for m in result.scalars().all()}

    for folio, license_number in rows:
        member = by_license.get(license_number)
        if member is None:
            logger.info("No member with license %s", license_number)
            report.skipped += 1
            continue
        if member.folio:
            report.skipped += 1
            continue
        member.folio = folio.zfill(FOLIO_WIDTH)
        report.updated += 1
        if report.updated % 50 == 0:
            logger.info("Assigned %d folios so far", report.updated)

    await db.commit()
    logger.info(
        "Folio import finished: %d updated, %d skipped, %d errors",
        report.updated, report.skipped, len(report.errors),
    )
    return report


async def _run(path: str) -> FolioImportReport:
    settings = get_settings()
    database = Database(settings.SQLALCHEMY_DATABASE_URI, pool_size=settings.POOL_SIZE)
    try:
        await database.connect()
        with open(path, encoding="utf-8", newline="") as fh:
            async with database.session() as session:
                return await populate_folios(session, fh)
    finally:
        await database.dispose()


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Assign legacy folios to members by license number.")
    parser.add_argument("csv_path")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s | %(levelname)s | %(message)s")
    report = asyncio.run(_run(args.csv_path))
    for error in report.errors:
        logger.error(error)
    return 1 if report.errors else 0


if __name__ == "__main__":
    raise SystemExit(main())
