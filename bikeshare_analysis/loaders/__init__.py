"""Output table writers"""

from .table_writer import TableWriter

__all__ = ['TableWriter']
