# timeclock/data/database.py
"""
SQLite storage for employees and time records.

- employees: enrolled people with the face embedding captured at registration
  (stored as a JSON array)
- time_records: check-in / check-out events, deleted with their employee

A new connection is opened per call; writes are serialised by a module
lock so the detection loop and the CLI can share one database file.
"""
import sqlite3
import json
import uuid
import threading
from datetime import datetime
from typing import List, Optional

DB_PATH = "timeclock.db"

CHECK_IN = "check_in"
CHECK_OUT = "check_out"
RECORD_TYPES = (CHECK_IN, CHECK_OUT)

_db_lock = threading.Lock()


def get_connection(db_path=None):
    """
    Open a NEW connection. Close it after use (or use `with closing(...)`).
    """
    conn = sqlite3.connect(db_path or DB_PATH, timeout=10.0)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def init_db(db_path=None):
    """Create tables if they do not exist."""
    conn = get_connection(db_path)
    try:
        conn.execute('''
            CREATE TABLE IF NOT EXISTS employees (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                role TEXT NOT NULL DEFAULT '',
                department TEXT,
                face_descriptor TEXT NOT NULL,
                created_at TEXT NOT NULL
            )
        ''')
        conn.execute('''
            CREATE TABLE IF NOT EXISTS time_records (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                employee_id TEXT NOT NULL REFERENCES employees(id) ON DELETE CASCADE,
                timestamp TEXT NOT NULL,
                type TEXT NOT NULL CHECK (type IN ('check_in', 'check_out'))
            )
        ''')
        conn.execute('''
            CREATE INDEX IF NOT EXISTS idx_time_records_employee
            ON time_records (employee_id, timestamp)
        ''')
        conn.commit()
    finally:
        conn.close()


def _employee_from_row(row) -> dict:
    return {
        'id': row['id'],
        'name': row['name'],
        'role': row['role'],
        'department': row['department'],
        'face_descriptor': json.loads(row['face_descriptor']),
        'created_at': datetime.fromisoformat(row['created_at']),
    }


def _record_from_row(row) -> dict:
    record = {
        'id': row['id'],
        'employee_id': row['employee_id'],
        'timestamp': datetime.fromisoformat(row['timestamp']),
        'type': row['type'],
    }
    if 'name' in row.keys():
        record['employee_name'] = row['name']
    return record


# === EMPLOYEES ===

def add_employee(name, face_descriptor, role="", department=None, employee_id=None, db_path=None):
    """
    Insert an employee.

    Args:
        name: Display name
        face_descriptor: Sequence of floats (the enrollment embedding)
        role, department: Free-form metadata
        employee_id: Explicit id (default: new UUID4)

    Returns:
        The stored employee as a dict

    Raises:
        sqlite3.IntegrityError: employee_id already exists
    """
    employee_id = employee_id or str(uuid.uuid4())
    descriptor = json.dumps([float(v) for v in face_descriptor])
    created_at = datetime.now().isoformat()

    with _db_lock:
        conn = get_connection(db_path)
        try:
            conn.execute('''
                INSERT INTO employees (id, name, role, department, face_descriptor, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
            ''', (employee_id, name, role or "", department, descriptor, created_at))
            conn.commit()
        finally:
            conn.close()

    return get_employee(employee_id, db_path)


def remove_employee(employee_id, db_path=None) -> bool:
    """Delete an employee and their time records. Returns True if one was deleted."""
    with _db_lock:
        conn = get_connection(db_path)
        try:
            cursor = conn.execute('DELETE FROM employees WHERE id = ?', (employee_id,))
            conn.commit()
            return cursor.rowcount > 0
        finally:
            conn.close()


def get_employee(employee_id, db_path=None) -> Optional[dict]:
    conn = get_connection(db_path)
    try:
        row = conn.execute('SELECT * FROM employees WHERE id = ?', (employee_id,)).fetchone()
    finally:
        conn.close()
    return _employee_from_row(row) if row else None


def get_all_employees(db_path=None) -> List[dict]:
    """All employees in enrollment order."""
    conn = get_connection(db_path)
    try:
        rows = conn.execute('SELECT * FROM employees ORDER BY rowid').fetchall()
    finally:
        conn.close()
    return [_employee_from_row(r) for r in rows]


# === TIME RECORDS ===

def log_time_record(employee_id, record_type, timestamp=None, db_path=None) -> dict:
    """
    Write a check-in / check-out event.

    Raises:
        ValueError: record_type is not 'check_in' or 'check_out'
        sqlite3.IntegrityError: unknown employee
    """
    if record_type not in RECORD_TYPES:
        raise ValueError(f"Unknown record type: {record_type!r}")
    timestamp = timestamp or datetime.now()

    with _db_lock:
        conn = get_connection(db_path)
        try:
            cursor = conn.execute('''
                INSERT INTO time_records (employee_id, timestamp, type)
                VALUES (?, ?, ?)
            ''', (employee_id, timestamp.isoformat(), record_type))
            conn.commit()
            record_id = cursor.lastrowid
        finally:
            conn.close()

    return {
        'id': record_id,
        'employee_id': employee_id,
        'timestamp': timestamp,
        'type': record_type,
    }


def get_last_record(employee_id, db_path=None) -> Optional[dict]:
    """Most recent time record of an employee, or None."""
    conn = get_connection(db_path)
    try:
        row = conn.execute('''
            SELECT * FROM time_records
            WHERE employee_id = ?
            ORDER BY timestamp DESC, id DESC LIMIT 1
        ''', (employee_id,)).fetchone()
    finally:
        conn.close()
    return _record_from_row(row) if row else None


def get_records(employee_id=None, date_str=None, db_path=None) -> List[dict]:
    """
    Time history, newest first, with the employee name attached.

    Args:
        employee_id: Only this employee
        date_str: Only this day ('YYYY-MM-DD')
    """
    query = '''
        SELECT r.*, e.name FROM time_records r
        JOIN employees e ON e.id = r.employee_id
    '''
    clauses, params = [], []
    if employee_id is not None:
        clauses.append('r.employee_id = ?')
        params.append(employee_id)
    if date_str is not None:
        clauses.append('substr(r.timestamp, 1, 10) = ?')
        params.append(date_str)
    if clauses:
        query += ' WHERE ' + ' AND '.join(clauses)
    query += ' ORDER BY r.timestamp DESC, r.id DESC'

    conn = get_connection(db_path)
    try:
        rows = conn.execute(query, params).fetchall()
    finally:
        conn.close()
    return [_record_from_row(r) for r in rows]
