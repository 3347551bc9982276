from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import List, Dict, Any, Optional
import math
import re

from .exceptions import RowValidationError
from .schema import (
    COLUMN_MAPPINGS,
    COST_FIELDS,
    DATE_FIELD,
    DATE_FORMAT,
    FIELD_NAMES,
    SERIAL_DATE_UNIX_OFFSET,
    TEXT_FIELDS,
)

_UNIX_EPOCH = datetime(1970, 1, 1)
_DECIMAL_COMMA = re.compile(r"^-?\d+,\d{1,2}$")


@dataclass
class CostRow:
    """One parsed line of a cost upload.

    Text fields are always strings (blank when the cell was empty), cost
    fields are floats or None, and updated_date is a calendar date or None.
    row_index is the 0-based position among data rows in the source file and
    is never persisted.
    """
    ndc_code: str = ""
    plant: str = ""
    dosage_form: str = ""
    material_code: str = ""
    description: str = ""
    product: str = ""
    strength: str = ""
    pack_size: str = ""
    rmc: Optional[float] = None
    pmc: Optional[float] = None
    consumables: Optional[float] = None
    conversion_cost: Optional[float] = None
    acquisition_cost_cmo: Optional[float] = None
    interest_on_wc: Optional[float] = None
    cop: Optional[float] = None
    freight_ddp_sea: Optional[float] = None
    cogs: Optional[float] = None
    updated_date: Optional[date] = None
    remarks_on_changes: str = ""
    row_index: int = field(default=0, compare=False)

    @property
    def key(self) -> str:
        return self.ndc_code.strip()

    def validate(self) -> None:
        """Raise RowValidationError unless the row carries a non-empty key."""
        if not self.key:
            raise RowValidationError(
                f"Row {self.row_index} has no NDC code", row_index=self.row_index
            )

    def to_fields(self) -> Dict[str, Any]:
        """Full field map for a replace-on-update write.

        Every field is present, so a blank cell clears the stored value.
        """
        values = {name: getattr(self, name) for name in FIELD_NAMES}
        values["ndc_code"] = self.key
        values[DATE_FIELD] = format_date(self.updated_date)
        return values


def format_date(value: Optional[date]) -> Optional[str]:
    if value is None:
        return None
    return value.strftime(DATE_FORMAT)


def convert_serial_date(value: Any) -> Optional[date]:
    """Convert a spreadsheet date serial to a calendar date.

    date = 1970-01-01 + (value - 25569) days. Zero, NaN, blank, non-numeric
    and out-of-range values give None; they never raise. Values that are
    already dates pass through, and DD/MM/YYYY strings are parsed.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return datetime.strptime(text, DATE_FORMAT).date()
        except ValueError:
            pass
        try:
            value = float(text)
        except ValueError:
            return None

    try:
        serial = float(value)
    except (TypeError, ValueError):
        return None

    if not serial or math.isnan(serial) or math.isinf(serial):
        return None

    try:
        return (_UNIX_EPOCH + timedelta(days=serial - SERIAL_DATE_UNIX_OFFSET)).date()
    except OverflowError:
        return None


def _to_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        # Codes typed as numbers come back as 12345.0 from spreadsheets
        if value.is_integer():
            return str(int(value))
    if isinstance(value, datetime):
        return value.strftime(DATE_FORMAT)
    return str(value).strip()


def _to_cost(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip()
        if text.startswith("$"):
            text = text[1:].strip()
        if _DECIMAL_COMMA.match(text):
            # Semicolon-delimited exports write 2,10 for 2.10
            text = text.replace(",", ".")
        else:
            text = text.replace(",", "")
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


class RowNormalizer:
    """Turns field-keyed raw dictionaries into typed CostRow objects.

    Per-cell problems are lenient: a cost cell that is not a number becomes
    blank and an unreadable date becomes None. Only structural failures
    (handled by the adapters) fail a parse.
    """

    def __init__(self):
        self._variation_to_field = {}
        for field_name, variations in COLUMN_MAPPINGS.items():
            for variation in variations:
                self._variation_to_field[variation] = field_name

    def normalize_column_name(self, column_name: Any) -> Optional[str]:
        """Map a CSV header to a field name, or None when it is unknown.

        Only exact matches after case folding and separator collapsing are
        accepted, so "COGS" and "cogs" match but "cogs total" does not.
        """
        if column_name is None:
            return None
        normalized = re.sub(r'[\s_\-]+', ' ', str(column_name).lower()).strip()
        if not normalized:
            return None
        return self._variation_to_field.get(normalized)

    def map_headers(self, raw_row: Dict[str, Any]) -> Dict[str, Any]:
        """Re-key a header-driven row by field name, dropping unknown columns."""
        mapped = {}
        for header, value in raw_row.items():
            field_name = self.normalize_column_name(header)
            if field_name and field_name not in mapped:
                mapped[field_name] = value
        return mapped

    def normalize_row(self, values: Dict[str, Any], row_index: int) -> CostRow:
        kwargs: Dict[str, Any] = {"row_index": row_index}
        for name in TEXT_FIELDS:
            kwargs[name] = _to_text(values.get(name))
        for name in COST_FIELDS:
            kwargs[name] = _to_cost(values.get(name))
        kwargs[DATE_FIELD] = convert_serial_date(values.get(DATE_FIELD))
        return CostRow(**kwargs)

    def normalize(self, rows: List[Dict[str, Any]]) -> List[CostRow]:
        return [self.normalize_row(values, index) for index, values in enumerate(rows)]
