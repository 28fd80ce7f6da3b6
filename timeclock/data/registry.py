# timeclock/data/registry.py
"""
Employee registry: enrolled identities backed by the SQLite database.

The detection loop only ever sees immutable RegistrySnapshot objects. The
registry caches one and rebuilds it after enroll/remove, or on refresh()
when another process may have changed the database.

Usage:
    registry = EmployeeRegistry("timeclock.db")
    identity = registry.add_identity("Maria", detection.embedding, role="cashier")

    loop = DetectionLoop(..., registry=registry.snapshot, ...)
"""
import logging
import sqlite3
import threading
from typing import List, Optional

from ..core.errors import DuplicateIdentityError, EmbeddingDimensionError
from ..recognition.types import Identity, RegistrySnapshot, as_embedding
from . import database

logger = logging.getLogger(__name__)


def _identity_from_employee(employee: dict) -> Identity:
    return Identity(
        id=employee['id'],
        display_name=employee['name'],
        embedding=as_embedding(employee['face_descriptor']),
        role=employee['role'],
        department=employee['department'],
    )


class EmployeeRegistry:
    """
    Enrolled employees with their face embeddings.
    """

    def __init__(self, db_path=None, expected_dimension: Optional[int] = None):
        """
        Args:
            db_path: SQLite file (default: database.DB_PATH)
            expected_dimension: Embedding length enforced on add_identity;
                taken from the enrolled data when None
        """
        self.db_path = db_path or database.DB_PATH
        self.expected_dimension = expected_dimension
        self._lock = threading.Lock()
        self._snapshot: Optional[RegistrySnapshot] = None

        database.init_db(self.db_path)

    def list_identities(self) -> List[Identity]:
        """All identities in enrollment order, read fresh from the database."""
        return [_identity_from_employee(e) for e in database.get_all_employees(self.db_path)]

    def get_identity(self, identity_id: str) -> Optional[Identity]:
        employee = database.get_employee(identity_id, self.db_path)
        return _identity_from_employee(employee) if employee else None

    def snapshot(self) -> RegistrySnapshot:
        """
        Cached immutable snapshot for the detection loop.

        Raises:
            EmbeddingDimensionError: enrolled embeddings have mixed lengths
        """
        with self._lock:
            if self._snapshot is None:
                self._snapshot = RegistrySnapshot(self.list_identities())
                logger.debug(f"Registry snapshot rebuilt: {self._snapshot!r}")
            return self._snapshot

    def refresh(self) -> RegistrySnapshot:
        """Drop the cached snapshot and reload from the database."""
        with self._lock:
            old = self._snapshot
            self._snapshot = None
        new = self.snapshot()
        if old is not None and len(old) != len(new):
            logger.info(f"🔄 Registry reloaded: {len(old)} -> {len(new)} employees")
        return new

    def _dimension(self) -> Optional[int]:
        if self.expected_dimension is not None:
            return self.expected_dimension
        return self.snapshot().dimension

    def add_identity(
        self,
        display_name: str,
        embedding,
        role: str = "",
        department: Optional[str] = None,
        identity_id: Optional[str] = None
    ) -> Identity:
        """
        Enroll a new employee.

        Raises:
            ValueError: empty name or invalid embedding
            EmbeddingDimensionError: embedding length differs from the enrolled ones
            DuplicateIdentityError: identity_id already taken
        """
        display_name = (display_name or "").strip()
        if not display_name:
            raise ValueError("display_name must not be empty")

        embedding = as_embedding(embedding)
        dimension = self._dimension()
        if dimension is not None and embedding.shape[0] != dimension:
            raise EmbeddingDimensionError(dimension, int(embedding.shape[0]))

        try:
            employee = database.add_employee(
                display_name, embedding.tolist(), role=role, department=department,
                employee_id=identity_id, db_path=self.db_path
            )
        except sqlite3.IntegrityError as e:
            raise DuplicateIdentityError(f"Identity {identity_id!r} already exists") from e

        self._invalidate()
        logger.info(f"✅ Enrolled: {display_name} ({employee['id']})")
        return _identity_from_employee(employee)

    def remove_identity(self, identity_id: str) -> bool:
        """Delete an employee. Returns False if the id was unknown."""
        removed = database.remove_employee(identity_id, self.db_path)
        if removed:
            self._invalidate()
            logger.info(f"🗑️ Removed: {identity_id}")
        return removed

    def _invalidate(self):
        with self._lock:
            self._snapshot = None

    def __len__(self) -> int:
        return len(self.snapshot())
