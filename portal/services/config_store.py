"""
Persisted portal settings: the exclusive flag, the password hash and the
product catalog.

Two interchangeable backends implement the same contract:

* ``SqlConfigStore`` keeps everything in the relational schema and applies
  each write in one transaction.
* ``JsonConfigStore`` keeps a single flat document and replaces the file
  atomically on every write.

Both serialize writers in-process so a read never observes a half-applied
update. Last writer wins.
"""
import json
import logging
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.orm import sessionmaker

from portal.core.exceptions import FatalInitError
from portal.core.security import generate_placeholder_hash, hash_password, is_placeholder_hash
from portal.models.product import Product
from portal.models.settings_record import SettingsRecord

logger = logging.getLogger(__name__)


@dataclass
class ProductData:
    """Catalog entry as exchanged with callers"""
    id: str
    title: str
    description: str = ""
    price_cents: Optional[int] = None  # None = never priced

    @classmethod
    def from_document(cls, raw: Any) -> "ProductData":
        """Build from a legacy-style dict (``id``, ``title``, ``desc``, ``priceCents``)."""
        if not isinstance(raw, dict):
            raise ValueError("product entry must be an object")
        product_id = str(raw.get("id") or "").strip()
        if not product_id:
            raise ValueError("product entry is missing an id")
        title = raw.get("title")
        if title is None or not str(title).strip():
            raise ValueError(f"product {product_id} is missing a title")

        description = raw.get("desc", raw.get("description"))
        price = raw.get("priceCents")
        if price is not None:
            if isinstance(price, bool):
                raise ValueError(f"product {product_id} has an invalid priceCents")
            try:
                price = int(price)
            except (TypeError, ValueError):
                raise ValueError(f"product {product_id} has an invalid priceCents") from None
            if price < 0:
                raise ValueError(f"product {product_id} has a negative priceCents")
        return cls(
            id=product_id,
            title=str(title),
            description=str(description or ""),
            price_cents=price,
        )

    def to_document(self) -> Dict[str, Any]:
        document: Dict[str, Any] = {"id": self.id, "title": self.title, "desc": self.description}
        if self.price_cents is not None:
            document["priceCents"] = self.price_cents
        return document


@dataclass
class ConfigSnapshot:
    """Settings and catalog as of the last completed write"""
    exclusive_enabled: bool
    password_hash: str
    products: List[ProductData] = field(default_factory=list)
    updated_at: Optional[datetime] = None

    def find_product(self, product_id: str) -> Optional[ProductData]:
        for product in self.products:
            if product.id == product_id:
                return product
        return None


@dataclass
class SettingsPatch:
    """Partial update; ``None`` fields are left unchanged"""
    exclusive_enabled: Optional[bool] = None
    password_hash: Optional[str] = None
    products: Optional[List[ProductData]] = None

    def is_empty(self) -> bool:
        return self.exclusive_enabled is None and self.password_hash is None and self.products is None


SEED_PRODUCTS = (
    ProductData(id="EX-01", title="EX-01 • Preorder", description="Member-only design • Limited"),
    ProductData(id="EX-02", title="EX-02 • Preorder", description="Prototype bundle"),
)


def normalize_catalog(products: Iterable[ProductData]) -> List[ProductData]:
    """Collapse duplicate ids (last one wins) and order the catalog by id."""
    by_id: Dict[str, ProductData] = {}
    for product in products:
        by_id[product.id] = product
    return [by_id[key] for key in sorted(by_id)]


def initial_password_hash(default_password: str = "") -> str:
    """Hash the configured bootstrap password, or mint an unusable placeholder."""
    if default_password:
        return hash_password(default_password)
    logger.warning(
        "No DEFAULT_ACCESS_PASSWORD configured; the access gate holds a random placeholder "
        "credential and stays locked until a password is set through PUT /api/admin/settings"
    )
    return generate_placeholder_hash()


class ConfigStore(ABC):
    """Read/modify/write contract shared by the storage backends."""

    backend = ""

    def __init__(self):
        self._lock = threading.RLock()

    @abstractmethod
    def read(self) -> ConfigSnapshot:
        """Return the current settings and catalog."""

    @abstractmethod
    def write(self, patch: SettingsPatch) -> ConfigSnapshot:
        """Apply ``patch`` as one unit and return the resulting snapshot."""

    @abstractmethod
    def initialize(self, default_password: str = "") -> ConfigSnapshot:
        """Create the singleton settings and seed catalog when absent."""

    def get_product(self, product_id: str) -> Optional[ProductData]:
        return self.read().find_product(product_id)

    @staticmethod
    def _check_patch(patch: SettingsPatch):
        if patch.password_hash is not None and not patch.password_hash:
            raise ValueError("password hash cannot be empty")


class SqlConfigStore(ConfigStore):
    """Relational backend (``settings`` / ``products`` tables)."""

    backend = "sql"

    def __init__(self, session_factory: sessionmaker):
        super().__init__()
        self.session_factory = session_factory

    def read(self) -> ConfigSnapshot:
        with self._lock:
            db = self.session_factory()
            try:
                return self._snapshot(db, self._settings_row(db))
            finally:
                db.close()

    def write(self, patch: SettingsPatch) -> ConfigSnapshot:
        self._check_patch(patch)
        with self._lock:
            db = self.session_factory()
            try:
                row = self._settings_row(db)
                if patch.exclusive_enabled is not None:
                    row.exclusive_enabled = bool(patch.exclusive_enabled)
                if patch.password_hash is not None:
                    row.password_hash = patch.password_hash
                if patch.products is not None:
                    self._replace_catalog(db, patch.products)
                row.updated_at = datetime.now(timezone.utc)
                db.commit()
                return self._snapshot(db, row)
            finally:
                db.close()

    def initialize(self, default_password: str = "") -> ConfigSnapshot:
        with self._lock:
            db = self.session_factory()
            try:
                row = db.query(SettingsRecord).order_by(SettingsRecord.id).first()
                if row is None:
                    row = SettingsRecord(
                        exclusive_enabled=False,
                        password_hash=initial_password_hash(default_password),
                        updated_at=datetime.now(timezone.utc),
                    )
                    db.add(row)
                    if db.query(Product).count() == 0:
                        self._replace_catalog(db, SEED_PRODUCTS)
                    db.commit()
                    logger.info("Created default portal settings")
                return self._snapshot(db, row)
            finally:
                db.close()

    def _settings_row(self, db) -> SettingsRecord:
        row = db.query(SettingsRecord).order_by(SettingsRecord.id).first()
        if row is None:
            raise RuntimeError("Portal settings are not initialized. Run the migration before serving.")
        return row

    def _snapshot(self, db, row: SettingsRecord) -> ConfigSnapshot:
        products = [
            ProductData(
                id=product.id,
                title=product.title,
                description=product.description or "",
                price_cents=product.price_cents,
            )
            for product in db.query(Product).order_by(Product.id).all()
        ]
        return ConfigSnapshot(
            exclusive_enabled=bool(row.exclusive_enabled),
            password_hash=row.password_hash,
            products=products,
            updated_at=row.updated_at,
        )

    def _replace_catalog(self, db, products: Iterable[ProductData]):
        catalog = normalize_catalog(products)
        keep_ids = [product.id for product in catalog]
        stale = db.query(Product)
        if keep_ids:
            stale = stale.filter(Product.id.notin_(keep_ids))
        stale.delete(synchronize_session=False)

        for product in catalog:
            db.merge(Product(
                id=product.id,
                title=product.title,
                description=product.description,
                price_cents=product.price_cents,
            ))


class JsonConfigStore(ConfigStore):
    """Flat document backend, same layout as the legacy ``config.json``."""

    backend = "json"

    def __init__(self, path):
        super().__init__()
        self.path = Path(path)

    def read(self) -> ConfigSnapshot:
        with self._lock:
            return self._from_document(self._load())

    def write(self, patch: SettingsPatch) -> ConfigSnapshot:
        self._check_patch(patch)
        with self._lock:
            snapshot = self._from_document(self._load())
            if patch.exclusive_enabled is not None:
                snapshot.exclusive_enabled = bool(patch.exclusive_enabled)
            if patch.password_hash is not None:
                snapshot.password_hash = patch.password_hash
            if patch.products is not None:
                snapshot.products = normalize_catalog(patch.products)
            snapshot.updated_at = datetime.now(timezone.utc)
            self._dump(snapshot)
            return snapshot

    def initialize(self, default_password: str = "") -> ConfigSnapshot:
        with self._lock:
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                if not self.path.exists():
                    logger.info("Writing default portal config to %s", self.path)
                    snapshot = ConfigSnapshot(
                        exclusive_enabled=False,
                        password_hash="",
                        products=normalize_catalog(replace(product) for product in SEED_PRODUCTS),
                    )
                else:
                    snapshot = self._from_document(self._load())
            except (OSError, ValueError) as error:
                raise FatalInitError(f"Unable to prepare config document {self.path}: {error}") from error

            if not snapshot.password_hash:
                snapshot.password_hash = initial_password_hash(default_password)
                snapshot.updated_at = datetime.now(timezone.utc)
                self._dump(snapshot)
            elif is_placeholder_hash(snapshot.password_hash):
                logger.warning("Portal password is still a placeholder; set one through the admin API")
            return snapshot

    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            raise RuntimeError(f"Config document {self.path} does not exist. Initialize the store first.")
        with self.path.open("r", encoding="utf-8") as handle:
            document = json.load(handle)
        if not isinstance(document, dict):
            raise ValueError("config document must be a JSON object")
        return document

    def _from_document(self, document: Dict[str, Any]) -> ConfigSnapshot:
        raw_products = document.get("exclusiveProducts")
        products = [ProductData.from_document(item) for item in raw_products] if isinstance(raw_products, list) else []
        updated_at = document.get("updatedAt")
        return ConfigSnapshot(
            exclusive_enabled=bool(document.get("exclusiveEnabled", False)),
            password_hash=str(document.get("passwordHash") or ""),
            products=normalize_catalog(products),
            updated_at=datetime.fromisoformat(updated_at) if updated_at else None,
        )

    def _dump(self, snapshot: ConfigSnapshot):
        document = {
            "exclusiveEnabled": snapshot.exclusive_enabled,
            "passwordHash": snapshot.password_hash,
            "exclusiveProducts": [product.to_document() for product in snapshot.products],
            "updatedAt": snapshot.updated_at.isoformat() if snapshot.updated_at else None,
        }
        fd, tmp_path = tempfile.mkstemp(prefix=".config-", suffix=".json", dir=str(self.path.parent))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(document, handle, indent=2, ensure_ascii=False)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
