# app.py
import io
import logging
import os
import zipfile
from datetime import datetime
from pathlib import Path

from flask import Flask, request, send_file, abort, jsonify

from config import Config, ExportOptions
from document_builder import document_for, load_branding
from errors import ExportInProgressError, RenderError
from export_service import ExportMode, ExportResult, export_document_sync, store_export
from models import Base, make_engine, make_session_factory, Invoice, Quote

logger = logging.getLogger(__name__)

RECORD_TYPES = {"quotes": Quote, "invoices": Invoice}


# -----------------------------
# Helpers
# -----------------------------
def _ensure_dirs(cfg):
    db_url = cfg["SQLALCHEMY_DATABASE_URI"]
    if db_url.startswith("sqlite:///") and db_url != "sqlite:///:memory:":
        Path(db_url[len("sqlite:///"):]).parent.mkdir(parents=True, exist_ok=True)
    Path(cfg["EXPORTS_DIR"]).mkdir(parents=True, exist_ok=True)


def _export_options(cfg) -> ExportOptions:
    return ExportOptions(
        brand_color=cfg["BRAND_COLOR"],
        raster_scale=cfg["RASTER_SCALE"],
        capture_timeout=cfg["CAPTURE_READY_TIMEOUT"],
        logo_timeout=cfg["LOGO_FETCH_TIMEOUT"],
        wrap_descriptions=cfg["WRAP_DESCRIPTIONS"],
    )


def _record_or_404(session, collection: str, record_id: int):
    model = RECORD_TYPES.get(collection)
    if model is None:
        abort(404)
    rec = session.get(model, record_id)
    if not rec:
        abort(404)
    return rec


def _requested_mode():
    mode = (request.args.get("mode") or "").strip().lower()
    if not mode:
        return None
    if mode not in {m.value for m in ExportMode}:
        abort(400, description=f"Unknown export mode: {mode}")
    return ExportMode(mode)


def _error_response(result):
    status = 409 if isinstance(result.error, ExportInProgressError) else 500
    return jsonify({"error": result.message}), status


# -----------------------------
# App factory
# -----------------------------
def create_app(config_overrides: dict | None = None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    _ensure_dirs(app.config)

    engine = make_engine(app.config["SQLALCHEMY_DATABASE_URI"], echo=app.config["SQLALCHEMY_ECHO"])
    Base.metadata.create_all(engine)

    SessionLocal = make_session_factory(engine)
    app.extensions["session_factory"] = SessionLocal

    def db_session():
        return SessionLocal()

    def _export(session, rec):
        branding = load_branding(session)
        try:
            document = document_for(session, rec, branding)
        except (ValueError, TypeError) as exc:
            logger.warning("Cannot build document for %s %s: %s", type(rec).__name__, rec.id, exc)
            return None, ExportResult(ok=False, filename="", error=RenderError(str(exc)))
        result = export_document_sync(
            document,
            branding,
            mode=_requested_mode(),
            options=_export_options(app.config),
        )
        return document, result

    # -----------------------------
    # PDF routes
    # -----------------------------
    @app.route("/<collection>/<int:record_id>/pdf")
    def document_pdf(collection, record_id):
        with db_session() as s:
            rec = _record_or_404(s, collection, record_id)
            _document, result = _export(s, rec)

        if not result.ok:
            return _error_response(result)

        return send_file(
            io.BytesIO(result.content),
            as_attachment=True,
            download_name=result.filename,
            mimetype="application/pdf",
        )

    @app.route("/<collection>/<int:record_id>/pdf/generate", methods=["POST"])
    def document_pdf_generate(collection, record_id):
        with db_session() as s:
            rec = _record_or_404(s, collection, record_id)
            document, result = _export(s, rec)
            if not result.ok:
                return _error_response(result)

            path = store_export(result, document, app.config["EXPORTS_DIR"])
            rec.pdf_path = path
            rec.pdf_generated_at = datetime.utcnow()
            s.commit()

        return jsonify({"pdf_path": path, "filename": result.filename, "pages": result.page_count})

    @app.route("/<collection>/<int:record_id>/pdf/download")
    def document_pdf_download(collection, record_id):
        with db_session() as s:
            rec = _record_or_404(s, collection, record_id)
            if not rec.pdf_path or not os.path.exists(rec.pdf_path):
                return jsonify({"error": "PDF not found. Generate it first."}), 404

            return send_file(
                rec.pdf_path,
                as_attachment=True,
                download_name=os.path.basename(rec.pdf_path),
                mimetype="application/pdf"
            )

    @app.route("/pdfs/download_all")
    def pdfs_download_all():
        year = (request.args.get("year") or "").strip()
        kind = (request.args.get("kind") or "all").strip().lower()
        models = [m for name, m in RECORD_TYPES.items() if kind in ("all", name, name[:-1])]

        paths = []
        with db_session() as s:
            for model in models:
                q = s.query(model).filter(model.pdf_path.isnot(None))
                for rec in q.all():
                    if year.isdigit() and len(year) == 4 and rec.created_at.year != int(year):
                        continue
                    paths.append(rec.pdf_path)

        mem = io.BytesIO()
        with zipfile.ZipFile(mem, "w", zipfile.ZIP_DEFLATED) as z:
            for path in paths:
                if path and os.path.exists(path):
                    z.write(path, arcname=os.path.basename(path))

        mem.seek(0)
        return send_file(mem, as_attachment=True, download_name="documents_pdfs.zip")

    return app


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    app = create_app()
    app.run(debug=True)
