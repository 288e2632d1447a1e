# db_init.py
from pathlib import Path

from config import Config
from models import Base, make_engine, make_session_factory, SystemConfigRecord, first_system_config

def main():
    # Ensure instance/ exists for SQLite local dev
    if Config.SQLALCHEMY_DATABASE_URI.startswith("sqlite"):
        Path("instance").mkdir(parents=True, exist_ok=True)

    # Ensure exports/ exists for PDFs
    Path(Config.EXPORTS_DIR).mkdir(parents=True, exist_ok=True)

    engine = make_engine(Config.SQLALCHEMY_DATABASE_URI, echo=Config.SQLALCHEMY_ECHO)
    Base.metadata.create_all(engine)

    # Seed the branding row so exports have a company name from day one
    SessionLocal = make_session_factory(engine)
    with SessionLocal() as s:
        if first_system_config(s) is None:
            s.add(SystemConfigRecord(
                company_name=Config.DEFAULT_COMPANY_NAME,
                header_tagline=Config.DEFAULT_TAGLINE,
            ))
            s.commit()
            print(f"Seeded system_config with company '{Config.DEFAULT_COMPANY_NAME}'.")

    print("✅ Database initialized.")
    print(f"DB: {Config.SQLALCHEMY_DATABASE_URI}")
    print(f"Exports dir: {Config.EXPORTS_DIR}")

if __name__ == "__main__":
    main()
