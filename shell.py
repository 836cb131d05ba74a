"""
Interactive shell with app context pre-loaded.

Usage:
    docker compose run api python shell.py   # inside Docker (connects to db service)
    python shell.py                          # local (DATABASE_URL must be set)

Available in the REPL:
    db          - active SQLAlchemy session (call db.close() when done)
    settings    - app settings object
    models      - app.models (Company, Run, PickEntry, SKU, ...)
    import_run  - app.services.run_import_service.import_run_workbook
"""

import code

# ── app context ──────────────────────────────────────────────────────────────
from app import models
from app.core.config import settings
from app.db.session import SessionLocal
from app.services.run_import_service import import_run_workbook

db = SessionLocal()

namespace = {
    "db": db,
    "settings": settings,
    "models": models,
    "import_run": import_run_workbook,
}

BANNER = """
Run import shell
────────────────
  db          → SQLAlchemy session
  settings    → app config
  models      → ORM models
  import_run  → import_run_workbook(db, company_id=..., payload=open(path, "rb").read())

Example:
  db.query(models.Run).order_by(models.Run.id.desc()).first()
  db.query(models.SKU).filter(models.SKU.code == "SKU1").first()
"""

# ── try IPython, fall back to stdlib REPL ────────────────────────────────────
try:
    from IPython import start_ipython
    from traitlets.config import Config

    cfg = Config()
    cfg.TerminalInteractiveShell.banner1 = BANNER
    start_ipython(argv=[], config=cfg, user_ns=namespace)
except ImportError:
    code.interact(banner=BANNER, local=namespace)
finally:
    db.close()
