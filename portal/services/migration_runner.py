"""
One-time import of the legacy ``config.json`` into the relational store.
"""
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from alembic import command
from alembic.config import Config
from alembic.script import ScriptDirectory
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from portal.core.database import create_session_factory
from portal.core.exceptions import FatalInitError
from portal.core.security import generate_placeholder_hash
from portal.models.product import Product
from portal.models.settings_record import SettingsRecord
from portal.services.config_store import SEED_PRODUCTS, ProductData, initial_password_hash

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parents[2]

STATUS_SKIPPED = "skipped"
STATUS_IMPORTED = "imported"
STATUS_INITIALIZED = "initialized"


@dataclass
class MigrationResult:
    """What a migration run did"""
    status: str
    products_imported: int = 0
    placeholder_credential: bool = False


class MigrationRunner:
    """Creates the schema and seeds it from the legacy document exactly once.

    Steps:
    1. Upgrade the schema to the alembic head revision.
    2. If a settings row exists, stop (the store is already populated).
    3. If the legacy document exists, parse it fully, then insert the
       settings row and its products in a single transaction.
    4. Otherwise create settings with a placeholder credential that has to be
       rotated through the admin API before the gate can be unlocked.

    Any failure raises ``FatalInitError`` without leaving a settings row behind.
    """

    def __init__(
        self,
        engine: Engine,
        legacy_path: Optional[Path] = None,
        default_password: str = "",
        alembic_ini: Optional[Path] = None,
    ):
        self.engine = engine
        self.legacy_path = Path(legacy_path) if legacy_path else None
        self.default_password = default_password
        self.alembic_ini = Path(alembic_ini) if alembic_ini else PROJECT_ROOT / "alembic.ini"
        self.session_factory = create_session_factory(engine)

    def run(self) -> MigrationResult:
        self.upgrade_schema()

        db = self.session_factory()
        try:
            existing = db.query(SettingsRecord).count()
        except SQLAlchemyError as error:
            raise FatalInitError(f"Unable to inspect settings table: {error}") from error
        finally:
            db.close()

        if existing >= 1:
            logger.info("Settings already present (%d row(s)); skipping legacy import", existing)
            return MigrationResult(status=STATUS_SKIPPED)

        if self.legacy_path is not None and self.legacy_path.exists():
            return self._import_legacy(self.load_legacy_document())

        return self._initialize_defaults()

    def upgrade_schema(self):
        """Bring the schema to the alembic head; safe to repeat."""
        alembic_dir = self.alembic_ini.parent / "alembic"
        if not self.alembic_ini.exists() or not alembic_dir.exists():
            raise FatalInitError("Alembic configuration is missing. Cannot initialize database safely.")

        alembic_cfg = Config(str(self.alembic_ini))
        alembic_cfg.set_main_option("script_location", str(alembic_dir))
        heads = ScriptDirectory.from_config(alembic_cfg).get_heads()
        if len(heads) != 1:
            raise FatalInitError("Expected a single Alembic head revision.")

        try:
            with self.engine.begin() as connection:
                alembic_cfg.attributes["connection"] = connection
                command.upgrade(alembic_cfg, "head")
        except SQLAlchemyError as error:
            raise FatalInitError(f"Schema upgrade failed: {error}") from error
        logger.info("Database schema at revision %s", heads[0])

    def load_legacy_document(self) -> Dict[str, Any]:
        """Read and parse the legacy document; any problem is fatal."""
        try:
            with self.legacy_path.open("r", encoding="utf-8") as handle:
                document = json.load(handle)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as error:
            raise FatalInitError(f"Unable to read legacy config {self.legacy_path}: {error}") from error
        if not isinstance(document, dict):
            raise FatalInitError(f"Legacy config {self.legacy_path} is not a JSON object")
        return document

    def _legacy_products(self, document: Dict[str, Any]) -> List[ProductData]:
        raw_products = document.get("exclusiveProducts")
        if not isinstance(raw_products, list):
            return []

        products = []
        for raw in raw_products:
            try:
                product = ProductData.from_document(raw)
            except ValueError as error:
                raise FatalInitError(f"Invalid product in legacy config: {error}") from error
            if product.price_cents is None:
                logger.warning(
                    "Legacy product %s has no priceCents; importing it at 0, set a price before selling it",
                    product.id,
                )
                product.price_cents = 0
            products.append(product)
        return products

    def _import_legacy(self, document: Dict[str, Any]) -> MigrationResult:
        logger.info("Migrating from %s...", self.legacy_path)
        products = self._legacy_products(document)

        password_hash = str(document.get("passwordHash") or "")
        placeholder = not password_hash
        if placeholder:
            logger.warning(
                "Legacy config has no passwordHash; storing a placeholder credential. "
                "Set a password through the admin API before enabling the gate."
            )
            password_hash = generate_placeholder_hash()

        db = self.session_factory()
        try:
            db.add(SettingsRecord(
                password_hash=password_hash,
                exclusive_enabled=bool(document.get("exclusiveEnabled")),
            ))
            # later duplicates replace earlier ones, like INSERT OR REPLACE
            for product in products:
                db.merge(Product(
                    id=product.id,
                    title=product.title,
                    description=product.description,
                    price_cents=product.price_cents,
                ))
                db.flush()
            db.commit()
        except SQLAlchemyError as error:
            db.rollback()
            raise FatalInitError(f"Legacy import failed: {error}") from error
        finally:
            db.close()

        logger.info("Migration complete: imported %d product(s)", len(products))
        return MigrationResult(
            status=STATUS_IMPORTED,
            products_imported=len(products),
            placeholder_credential=placeholder,
        )

    def _initialize_defaults(self) -> MigrationResult:
        logger.info("No existing data found. Creating default settings...")
        db = self.session_factory()
        try:
            db.add(SettingsRecord(
                password_hash=initial_password_hash(self.default_password),
                exclusive_enabled=False,
            ))
            if db.query(Product).count() == 0:
                for product in SEED_PRODUCTS:
                    db.add(Product(
                        id=product.id,
                        title=product.title,
                        description=product.description,
                        price_cents=product.price_cents,
                    ))
            db.commit()
        except (SQLAlchemyError, ValueError) as error:
            db.rollback()
            raise FatalInitError(f"Default settings could not be created: {error}") from error
        finally:
            db.close()

        return MigrationResult(status=STATUS_INITIALIZED, placeholder_credential=not self.default_password)
