from .adapters.csv_adapter import CsvAdapter
from .adapters.excel_adapter import ExcelAdapter
from .exceptions import ParseError
from .normalizer import RowNormalizer, CostRow
from typing import List, Optional
import logging

logger = logging.getLogger(__name__)


class RecordParser:
    """Parser for MIS cost uploads.

    CSV uploads are decoded by header name; spreadsheet uploads by fixed
    column position. Both end up as typed CostRow objects in file order.
    """

    def __init__(self, register_defaults: bool = True):
        """Initialize the parser.

        Args:
            register_defaults: If True, register the CSV and Excel adapters
        """
        self.adapters = []
        self.normalizer = RowNormalizer()
        if register_defaults:
            self.register_adapter(CsvAdapter())
            self.register_adapter(ExcelAdapter())

    def register_adapter(self, adapter):
        """Register a format adapter.

        Args:
            adapter: Adapter instance with can_handle(fmt) and read(data) methods
        """
        self.adapters.append(adapter)

    def _find_adapter(self, fmt: str):
        for a in self.adapters:
            if a.can_handle(fmt):
                return a
        return None

    def parse(self, data: bytes, fmt: str) -> List[CostRow]:
        """Parse an upload into typed rows.

        Args:
            data: Raw upload bytes
            fmt: Declared format tag ('csv' or 'spreadsheet')

        Returns:
            List of CostRow in file order. Rows without a key are kept here;
            they are rejected at submission time so the report can name them.

        Raises:
            ParseError: If the format is unknown or the bytes are malformed.
                No partial result is ever returned.
        """
        adapter = self._find_adapter(fmt)
        if adapter is None:
            raise ParseError(f"No adapter found for format '{fmt}'")

        raw_rows = adapter.read(data)

        if getattr(adapter, "header_driven", False):
            raw_rows = [self.normalizer.map_headers(row) for row in raw_rows]

        rows = self.normalizer.normalize(raw_rows)
        logger.info(f"Parsed {len(rows)} rows from {fmt} upload ({len(data)} bytes)")
        return rows

    @staticmethod
    def format_for_filename(filename: str) -> Optional[str]:
        """Guess the format tag from an upload's file name."""
        lowered = filename.lower()
        if lowered.endswith(".csv"):
            return "csv"
        if lowered.endswith(".xlsx"):
            return "spreadsheet"
        return None
