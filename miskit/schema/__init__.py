"""MIS record schema: field order, positional sheet layout and header aliases."""

from typing import Dict, List

KEY_FIELD = "ndc_code"
DATE_FIELD = "updated_date"

# Persisted record fields in display order
FIELD_NAMES: List[str] = [
    "ndc_code",
    "plant",
    "dosage_form",
    "material_code",
    "description",
    "product",
    "strength",
    "pack_size",
    "rmc",
    "pmc",
    "consumables",
    "conversion_cost",
    "acquisition_cost_cmo",
    "interest_on_wc",
    "cop",
    "freight_ddp_sea",
    "cogs",
    "updated_date",
    "remarks_on_changes",
]

# Numeric-or-blank cost columns
COST_FIELDS: List[str] = [
    "rmc",
    "pmc",
    "consumables",
    "conversion_cost",
    "acquisition_cost_cmo",
    "interest_on_wc",
    "cop",
    "freight_ddp_sea",
    "cogs",
]

TEXT_FIELDS: List[str] = [
    name for name in FIELD_NAMES
    if name not in COST_FIELDS and name != DATE_FIELD
]

# Spreadsheet uploads carry a three-row banner above the data
SPREADSHEET_PREAMBLE_ROWS = 3

# Spreadsheet uploads are decoded by position only. Column 17 holds the
# updated date and column 18 the remarks, the reverse of FIELD_NAMES order.
SPREADSHEET_COLUMNS: Dict[int, str] = {
    0: "ndc_code",
    1: "plant",
    2: "dosage_form",
    3: "material_code",
    4: "description",
    5: "product",
    6: "strength",
    7: "pack_size",
    8: "rmc",
    9: "pmc",
    10: "consumables",
    11: "conversion_cost",
    12: "acquisition_cost_cmo",
    13: "interest_on_wc",
    14: "cop",
    15: "freight_ddp_sea",
    16: "cogs",
    17: "updated_date",
    18: "remarks_on_changes",
}

# CSV header variations (lower-cased, separators collapsed to one space)
COLUMN_MAPPINGS: Dict[str, List[str]] = {
    "ndc_code": ["ndc code", "ndccode", "ndc", "code", "product code"],
    "plant": ["plant", "site"],
    "dosage_form": ["dosage form", "dosageform", "dosage"],
    "material_code": ["material code", "materialcode", "material"],
    "description": ["description", "desc"],
    "product": ["product", "product name", "productname"],
    "strength": ["strength"],
    "pack_size": ["pack size", "packsize", "pack"],
    "rmc": ["rmc"],
    "pmc": ["pmc"],
    "consumables": ["consumables"],
    "conversion_cost": ["conversion cost", "conversioncost"],
    "acquisition_cost_cmo": ["acquisition cost cmo", "acquisitioncostcmo"],
    "interest_on_wc": ["interest on wc", "interestonwc"],
    "cop": ["cop"],
    "freight_ddp_sea": ["freight ddp sea", "freightddpsea"],
    "cogs": ["cogs"],
    "updated_date": ["updated date", "updateddate", "last updated"],
    "remarks_on_changes": [
        "remarks on changes", "remarksonchanges", "remarks", "remark"
    ],
}

# Spreadsheet serial for 1970-01-01 (1900 date system)
SERIAL_DATE_UNIX_OFFSET = 25569
DATE_FORMAT = "%d/%m/%Y"

# Attribute on attachment folders/files that binds them to a record revision
REVISION_TAG_ATTRIBUTE = "Version_number"

__all__ = [
    "KEY_FIELD",
    "DATE_FIELD",
    "FIELD_NAMES",
    "COST_FIELDS",
    "TEXT_FIELDS",
    "SPREADSHEET_PREAMBLE_ROWS",
    "SPREADSHEET_COLUMNS",
    "COLUMN_MAPPINGS",
    "SERIAL_DATE_UNIX_OFFSET",
    "DATE_FORMAT",
    "REVISION_TAG_ATTRIBUTE",
]
