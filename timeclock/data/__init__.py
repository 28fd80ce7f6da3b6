# timeclock/data/__init__.py
"""
Data layer - SQLite storage and the employee registry.
"""
from .database import (
    init_db,
    get_connection,
    add_employee,
    remove_employee,
    get_employee,
    get_all_employees,
    log_time_record,
    get_last_record,
    get_records,
)
from .registry import EmployeeRegistry

__all__ = [
    'init_db',
    'get_connection',
    'add_employee',
    'remove_employee',
    'get_employee',
    'get_all_employees',
    'log_time_record',
    'get_last_record',
    'get_records',
    'EmployeeRegistry',
]
