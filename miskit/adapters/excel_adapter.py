import io
import openpyxl

from ..exceptions import ParseError
from ..schema import SPREADSHEET_COLUMNS, SPREADSHEET_PREAMBLE_ROWS


class ExcelAdapter:
    """Positional reader for xlsx uploads.

    Only the first worksheet is read. The preamble rows are dropped and every
    following row is decoded through SPREADSHEET_COLUMNS, with no header
    lookup: a shifted column in the source silently lands in the wrong field.
    """

    formats = ("spreadsheet", "xlsx")
    header_driven = False

    def __init__(self, columns=None, preamble_rows=SPREADSHEET_PREAMBLE_ROWS):
        self.columns = dict(columns or SPREADSHEET_COLUMNS)
        self.preamble_rows = preamble_rows

    def can_handle(self, fmt):
        return fmt.lower() in self.formats

    def _open(self, data):
        try:
            return openpyxl.load_workbook(io.BytesIO(data), read_only=True, data_only=True)
        except Exception as e:
            # Bad zips, missing parts and malformed workbook XML all land here
            raise ParseError(f"Could not open spreadsheet upload: {e}") from e

    def read(self, data):
        if not data:
            raise ParseError("Spreadsheet upload is empty")

        wb = self._open(data)
        try:
            return self._read_rows(wb)
        except ParseError:
            raise
        except Exception as e:
            # read_only workbooks parse sheet XML lazily, during iteration
            raise ParseError(f"Could not read spreadsheet rows: {e}") from e
        finally:
            wb.close()

    def _read_rows(self, wb):
        if not wb.worksheets:
            raise ParseError("Spreadsheet upload has no worksheets")
        ws = wb.worksheets[0]

        rows = []
        for values in ws.iter_rows(min_row=self.preamble_rows + 1, values_only=True):
            if all(value is None or str(value).strip() == "" for value in values):
                continue
            row = {}
            for index, field_name in self.columns.items():
                row[field_name] = values[index] if index < len(values) else None
            rows.append(row)
        return rows
