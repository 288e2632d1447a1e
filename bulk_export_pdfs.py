# bulk_export_pdfs.py
import argparse
import logging
import os
from datetime import datetime
from pathlib import Path

from config import Config, ExportOptions
from document_builder import document_for, load_branding
from export_service import ExportMode, export_document_sync, store_export
from models import Base, make_engine, make_session_factory, Invoice, Quote

KINDS = {"quote": [Quote], "invoice": [Invoice], "all": [Quote, Invoice]}


def _number(rec) -> str:
    return rec.invoice_number if isinstance(rec, Invoice) else rec.quote_number


def main(argv=None):
    parser = argparse.ArgumentParser(description="Bulk export quote/invoice PDFs.")
    parser.add_argument("--kind", choices=sorted(KINDS), default="all", help="Which documents to export.")
    parser.add_argument("--year", type=str, default="", help="Only export documents created in a given year (YYYY).")
    parser.add_argument("--mode", choices=[m.value for m in ExportMode], default=None,
                        help="Force vector or raster export (default: per document kind).")
    parser.add_argument("--all", action="store_true", help="Re-export even if a PDF already exists.")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s: %(message)s")

    target_year = (args.year or "").strip()
    if target_year and not (target_year.isdigit() and len(target_year) == 4):
        raise SystemExit("Year must be 4 digits, e.g. --year 2025")

    # Ensure exports dir exists
    Path(Config.EXPORTS_DIR).mkdir(parents=True, exist_ok=True)

    engine = make_engine(Config.SQLALCHEMY_DATABASE_URI, echo=Config.SQLALCHEMY_ECHO)
    Base.metadata.create_all(engine)
    SessionLocal = make_session_factory(engine)
    options = ExportOptions.from_config()

    with SessionLocal() as s:
        records = []
        for model in KINDS[args.kind]:
            records.extend(s.query(model).order_by(model.created_at.asc()).all())

        if target_year:
            records = [r for r in records if r.created_at.year == int(target_year)]

        if not records:
            print("No documents found for the given filter.")
            return 0

        branding = load_branding(s)
        total = len(records)
        generated = 0
        skipped = 0
        failed = 0

        for i, rec in enumerate(records, start=1):
            number = _number(rec)
            try:
                has_pdf = bool(rec.pdf_path) and os.path.exists(rec.pdf_path or "")
                if has_pdf and not args.all:
                    skipped += 1
                    print(f"[{i}/{total}] SKIP  {number} (already has PDF)")
                    continue

                document = document_for(s, rec, branding)
                result = export_document_sync(document, branding, mode=args.mode, options=options)
                if not result.ok:
                    failed += 1
                    print(f"[{i}/{total}] FAIL  {number}  ({result.error})")
                    continue

                path = store_export(result, document)
                rec.pdf_path = path
                rec.pdf_generated_at = datetime.utcnow()
                s.commit()
                generated += 1
                print(f"[{i}/{total}] DONE  {number} -> {path} ({result.page_count} page(s))")

            except Exception as e:
                s.rollback()
                failed += 1
                print(f"[{i}/{total}] FAIL  {number}  ({e})")

        print("\n✅ Bulk PDF export complete.")
        print(f"Generated: {generated}")
        print(f"Skipped:   {skipped}")
        print(f"Failed:    {failed}")
        print(f"Exports:   {Config.EXPORTS_DIR}")
    return 1 if failed else 0


if __name__ == "__main__":
    raise SystemExit(main())
