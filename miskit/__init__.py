from .parser import RecordParser
from .normalizer import RowNormalizer, CostRow, convert_serial_date
from .schema import FIELD_NAMES, SPREADSHEET_COLUMNS, COLUMN_MAPPINGS

__all__ = ["RecordParser", "RowNormalizer", "CostRow", "convert_serial_date", "FIELD_NAMES", "SPREADSHEET_COLUMNS", "COLUMN_MAPPINGS"]
