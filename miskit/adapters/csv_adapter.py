import csv
import io
import chardet
from typing import List, Dict, Any

from ..exceptions import ParseError


class CsvAdapter:
    """CSV adapter for reading header-driven uploads from raw bytes.

    Handles:
    - Multiple encodings (UTF-8, UTF-8-BOM, Windows-1252, ISO-8859-1, etc.)
    - Different delimiters (comma, semicolon, tab)
    - Blank lines, which are skipped
    """

    formats = ("csv",)
    header_driven = True

    def can_handle(self, fmt: str) -> bool:
        """Check if this adapter can handle the declared format tag."""
        return fmt.lower() in self.formats

    def _detect_encoding(self, data: bytes) -> str:
        """Detect byte encoding using chardet with fallback."""
        sample = data[:10000]  # First 10KB is enough for detection

        # Check for BOM first
        if sample.startswith(b'\xef\xbb\xbf'):
            return 'utf-8-sig'

        encoding = chardet.detect(sample).get('encoding') or 'utf-8'

        encoding_lower = encoding.lower()
        if 'utf-8' in encoding_lower or 'utf8' in encoding_lower or encoding_lower == 'ascii':
            return 'utf-8'

        return encoding

    def _decode(self, data: bytes) -> str:
        encoding = self._detect_encoding(data)
        try:
            return data.decode(encoding)
        except (UnicodeDecodeError, LookupError) as e:
            for fallback_encoding in ('cp1252', 'latin-1'):
                try:
                    return data.decode(fallback_encoding)
                except UnicodeDecodeError:
                    continue
            raise ParseError(f"Could not decode CSV upload: {e}") from e

    def _detect_delimiter(self, text: str) -> str:
        """Detect CSV delimiter from a sample, falling back to header counts."""
        sample = text[:1024]
        try:
            return csv.Sniffer().sniff(sample, delimiters=',;\t').delimiter
        except csv.Error:
            first_line = sample.splitlines()[0] if sample else ''
            comma_count = first_line.count(',')
            semicolon_count = first_line.count(';')
            tab_count = first_line.count('\t')

            if tab_count > comma_count and tab_count > semicolon_count:
                return '\t'
            elif semicolon_count > comma_count:
                return ';'
            return ','

    def read(self, data: bytes) -> List[Dict[str, Any]]:
        """Read CSV bytes and return raw rows keyed by header name.

        Args:
            data: Raw upload bytes; the first line is the header

        Returns:
            List of dictionaries, one per non-blank data line

        Raises:
            ParseError: If the bytes cannot be decoded or parsed as CSV
        """
        if not data or not data.strip():
            return []

        if b'\x00' in data and not data.startswith((b'\xff\xfe', b'\xfe\xff')):
            raise ParseError("CSV upload contains NUL bytes; is it a binary file?")

        text = self._decode(data)
        delimiter = self._detect_delimiter(text)

        rows = []
        try:
            reader = csv.DictReader(io.StringIO(text, newline=''), delimiter=delimiter)
            for row in reader:
                # Extra cells beyond the header land under the None key
                cleaned_row = {
                    key: str(value) if value is not None else ''
                    for key, value in row.items()
                    if key is not None
                }
                if not any(value.strip() for value in cleaned_row.values()):
                    continue
                rows.append(cleaned_row)
        except csv.Error as e:
            raise ParseError(f"Error parsing CSV upload: {e}") from e

        return rows
