"""
Database module for emergency contacts and incidents.

Schema versioning ensures automatic migration when schema changes.
"""

from __future__ import annotations

import logging
import os
import sqlite3
import threading
from typing import List, Optional

from domain.errors import PersistenceFailure
from models.incident import INCIDENT_STATUS_PENDING, Contact, Incident

# Schema version - increment when schema changes
EXPECTED_SCHEMA_VERSION = 1


class Database:
    """
    SQLite store for contacts and incidents.

    Schema:
    - schema_meta: tracks schema version
    - contacts: emergency contacts that receive alerts
    - incidents: one row per completed escalation

    The connection is shared between the event loop and FastAPI worker
    threads, so every statement runs under a lock.
    """

    def __init__(self, local_database_path: str):
        """
        Initialize the database.

        Args:
            local_database_path: Path to the SQLite database file (":memory:" for tests).
        """
        self.local_database_path = local_database_path
        self.conn: Optional[sqlite3.Connection] = None
        self._lock = threading.RLock()

        db_dir = os.path.dirname(local_database_path)
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)

        logging.info(f"Database initialized at {local_database_path}")

    def _get_connection(self) -> sqlite3.Connection:
        """Get or create database connection."""
        if self.conn is None:
            self.conn = sqlite3.connect(self.local_database_path, check_same_thread=False)
        return self.conn

    def _get_schema_version(self) -> Optional[int]:
        """Get current schema version from database."""
        try:
            cursor = self._get_connection().cursor()
            cursor.execute(
                "SELECT name FROM sqlite_master WHERE type='table' AND name='schema_meta'"
            )
            if cursor.fetchone() is None:
                return None

            cursor.execute("SELECT schema_version FROM schema_meta LIMIT 1")
            row = cursor.fetchone()
            return row[0] if row else None
        except sqlite3.Error:
            return None

    def _drop_old_tables(self) -> None:
        cursor = self._get_connection().cursor()
        for table in ("contacts", "incidents", "schema_meta"):
            try:
                cursor.execute(f"DROP TABLE IF EXISTS {table}")
                logging.debug(f"Dropped table: {table}")
            except sqlite3.Error as e:
                logging.warning(f"Could not drop table {table}: {e}")
        self._get_connection().commit()

    def _create_schema(self) -> None:
        cursor = self._get_connection().cursor()

        cursor.execute("""
            CREATE TABLE schema_meta (
                id INTEGER PRIMARY KEY CHECK (id = 1),
                schema_version INTEGER NOT NULL,
                created_at TEXT NOT NULL DEFAULT (datetime('now'))
            )
        """)

        cursor.execute("""
            CREATE TABLE contacts (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                phone TEXT NOT NULL,
                email TEXT
            )
        """)

        # lat/lng are NULL when the escalation ran with an unknown location
        cursor.execute("""
            CREATE TABLE incidents (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                timestamp TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
                location_lat REAL,
                location_lng REAL,
                status TEXT NOT NULL,
                details TEXT NOT NULL
            )
        """)
        cursor.execute("CREATE INDEX idx_incidents_timestamp ON incidents(timestamp)")

        cursor.execute(
            "INSERT INTO schema_meta (id, schema_version) VALUES (1, ?)",
            (EXPECTED_SCHEMA_VERSION,)
        )

        self._get_connection().commit()
        logging.info(f"Created schema version {EXPECTED_SCHEMA_VERSION}")

    def initialize(self) -> None:
        """
        Initialize the database schema.

        If schema_meta is missing or version doesn't match EXPECTED_SCHEMA_VERSION,
        drops all old tables and creates fresh schema.
        """
        with self._lock:
            try:
                current_version = self._get_schema_version()

                if current_version != EXPECTED_SCHEMA_VERSION:
                    if current_version is not None:
                        logging.warning(
                            f"Schema version mismatch: found {current_version}, "
                            f"expected {EXPECTED_SCHEMA_VERSION}. Dropping old tables."
                        )
                    else:
                        logging.info("No schema found, creating fresh database.")

                    self._drop_old_tables()
                    self._create_schema()
                else:
                    logging.info(f"Schema version {current_version} is current")

            except sqlite3.Error as e:
                logging.error(f"Database initialization error: {e}")
                raise

    # -------------------------------------------------------------------------
    # Contacts
    # -------------------------------------------------------------------------

    def add_contact(self, name: str, phone: str, email: Optional[str] = None) -> int:
        with self._lock:
            try:
                cursor = self._get_connection().cursor()
                cursor.execute(
                    "INSERT INTO contacts (name, phone, email) VALUES (?, ?, ?)",
                    (name, phone, email),
                )
                self._get_connection().commit()
                return cursor.lastrowid
            except sqlite3.Error as e:
                logging.error(f"Error adding contact: {e}")
                raise PersistenceFailure(f"Could not add contact: {e}") from e

    def list_contacts(self) -> List[Contact]:
        with self._lock:
            try:
                cursor = self._get_connection().cursor()
                cursor.execute("SELECT id, name, phone, email FROM contacts ORDER BY id")
                return [Contact.from_row(row) for row in cursor.fetchall()]
            except sqlite3.Error as e:
                logging.error(f"Error listing contacts: {e}")
                raise PersistenceFailure(f"Could not list contacts: {e}") from e

    def delete_contact(self, contact_id: int) -> bool:
        """
        Delete a contact.

        Returns:
            True if a row was deleted.
        """
        with self._lock:
            try:
                cursor = self._get_connection().cursor()
                cursor.execute("DELETE FROM contacts WHERE id = ?", (contact_id,))
                self._get_connection().commit()
                return cursor.rowcount > 0
            except sqlite3.Error as e:
                logging.error(f"Error deleting contact {contact_id}: {e}")
                raise PersistenceFailure(f"Could not delete contact: {e}") from e

    # -------------------------------------------------------------------------
    # Incidents
    # -------------------------------------------------------------------------

    def create_incident(
        self,
        lat: Optional[float],
        lng: Optional[float],
        details: str,
        status: str = INCIDENT_STATUS_PENDING,
    ) -> int:
        """
        Persist one incident.

        Returns:
            ID of the inserted row.

        Raises:
            PersistenceFailure: The write failed; callers decide whether to retry.
        """
        with self._lock:
            try:
                cursor = self._get_connection().cursor()
                cursor.execute(
                    """
                    INSERT INTO incidents (location_lat, location_lng, status, details)
                    VALUES (?, ?, ?, ?)
                    """,
                    (lat, lng, status, details),
                )
                self._get_connection().commit()
                logging.info(f"Incident {cursor.lastrowid} recorded ({status})")
                return cursor.lastrowid
            except sqlite3.Error as e:
                logging.error(f"Error creating incident: {e}")
                raise PersistenceFailure(f"Could not create incident: {e}") from e

    def get_incident(self, incident_id: int) -> Optional[Incident]:
        with self._lock:
            try:
                cursor = self._get_connection().cursor()
                cursor.execute(
                    """
                    SELECT id, timestamp, location_lat, location_lng, status, details
                    FROM incidents WHERE id = ?
                    """,
                    (incident_id,),
                )
                row = cursor.fetchone()
                return Incident.from_row(row) if row else None
            except sqlite3.Error as e:
                logging.error(f"Error reading incident {incident_id}: {e}")
                raise PersistenceFailure(f"Could not read incident: {e}") from e

    def list_incidents(self, limit: Optional[int] = None) -> List[Incident]:
        """Return incidents, newest first."""
        with self._lock:
            try:
                cursor = self._get_connection().cursor()
                query = """
                    SELECT id, timestamp, location_lat, location_lng, status, details
                    FROM incidents
                    ORDER BY timestamp DESC, id DESC
                """
                if limit is not None:
                    cursor.execute(query + " LIMIT ?", (limit,))
                else:
                    cursor.execute(query)
                return [Incident.from_row(row) for row in cursor.fetchall()]
            except sqlite3.Error as e:
                logging.error(f"Error listing incidents: {e}")
                raise PersistenceFailure(f"Could not list incidents: {e}") from e

    def close(self) -> None:
        """Close database connection."""
        with self._lock:
            if self.conn is not None:
                self.conn.close()
                self.conn = None
                logging.info("Database connection closed")
