"""Named regular expressions used by the extractors.

Each constant targets exactly one layout. Keep unrelated layouts in
separate expressions so they can be tested on their own.
"""

import re

# --- Table region -----------------------------------------------------------

# Column header "QUANTITY DESCRIPTION UNIT PRICE TOTAL"; columns may be
# separated by any whitespace, including wrapped lines.
TABLE_HEADER = re.compile(
    r"QUANTITY\s+DESCRIPTION\s+UNIT\s*PRICE\s+TOTAL",
    re.IGNORECASE,
)

# First "SUBTOTAL" or "SUB TOTAL" after the header closes the table.
TABLE_END = re.compile(r"SUB\s*TOTAL", re.IGNORECASE)

# --- Line classification ----------------------------------------------------

# "5 Widget Assembly ..." : integer quantity, whitespace, remainder.
ITEM_START_LINE = re.compile(r"^(\d+)\s+(.+)$")

# "WID-2024-A 10.00 50.00" : line opening with 3+ uppercase letters.
PRODUCT_CODE_LINE = re.compile(r"^[A-Z]{3,}")

# Leading code token of a product-code line.
LEADING_PRODUCT_CODE = re.compile(r"^([A-Z0-9\-]+)")

# "10.00 50.00" : nothing but a unit price and a total.
PRICE_ONLY_LINE = re.compile(r"^(\d+\.?\d*)\s+(\d+\.?\d*)$")

# "... 10.00 50.00" : unit price and total closing a longer line.
TRAILING_PRICE_PAIR = re.compile(r"(\d+\.?\d*)\s+(\d+\.?\d*)$")

# --- Whole-text item templates ----------------------------------------------

# "5 Widget Assembly 10.00 50.00" on a single line.
SINGLE_LINE_ITEM = re.compile(
    r"^\s*(\d+)\s+([A-Za-z].+?)\s+(\d+\.\d{2})\s+(\d+\.\d{2})\s*$",
    re.MULTILINE,
)

# "5 Widget Assembly" followed by "WID-2024-A ... 10.00 50.00" on the next line.
TWO_LINE_ITEM = re.compile(
    r"^\s*(\d+)\s+([A-Za-z][^\n]+)\n\s*([A-Z]{3,}[A-Z0-9\-]+)(?:\s+.*?)?\s+(\d+\.\d{2})\s+(\d+\.\d{2})",
    re.MULTILINE,
)

# "5 Widget Assembly (WID-2024-A) 10.00 50.00" with the code in parentheses.
PARENTHESIZED_CODE_ITEM = re.compile(
    r"^\s*(\d+)\s+(.+?)\s*\(([A-Z0-9\-]+)\)\s+(\d+\.\d{2})\s+(\d+\.\d{2})\s*$",
    re.MULTILINE,
)

# Uppercase code embedded in free description text.
EMBEDDED_PRODUCT_CODE = re.compile(r"([A-Z]{3,}[A-Z0-9\-]+)")

# --- Header fields ----------------------------------------------------------

# "INVOICE # INV-1001"
INVOICE_NUMBER = re.compile(r"INVOICE\s*#\s*([A-Z0-9\-]+)", re.IGNORECASE)

# "P.O. NUMBER PO-77" / "PO NUMBER PO-77"
PO_NUMBER = re.compile(r"P\.?\s*O\.?\s*NUMBER\s*:?\s*([A-Z0-9\-]+)", re.IGNORECASE)

# "DATE: 12.03.2024"; "DUE DATE:" is matched by DUE_DATE instead.
DOCUMENT_DATE = re.compile(r"(?<!DUE )(?<!DUE)DATE:\s*([0-9][0-9./\-]*)", re.IGNORECASE)

# "SALESPERSON" label with the name on the following line.
SALESPERSON = re.compile(r"SALESPERSON\s*\n\s*([^\n]+)", re.IGNORECASE)

# "DUE DATE: 12/04/2024" / "PAYMENT DUE 12/04/2024"
DUE_DATE = re.compile(r"(?:DUE\s*DATE|PAYMENT\s*DUE)\s*:?\s*([0-9][0-9./\-]*)", re.IGNORECASE)

# "TERMS: Net 30" / "PAYMENT TERMS: Net 30"
TERMS = re.compile(r"(?:PAYMENT\s*)?TERMS\s*:\s*([^\n]+)", re.IGNORECASE)

# --- Totals -----------------------------------------------------------------

_AMOUNT = r"\s*:?\s*\$?\s*(\d[\d,]*(?:\.\d+)?)"

# "SUBTOTAL 1,250.00" / "Sub Total: $1250"
SUBTOTAL = re.compile(r"SUB\s*TOTAL" + _AMOUNT, re.IGNORECASE)

# "SALES TAX 81.25" / "TAX: 81.25"
TAX = re.compile(r"(?:SALES\s*)?TAX" + _AMOUNT, re.IGNORECASE)

# "SHIPPING & HANDLING 15.00"
SHIPPING = re.compile(r"SHIPPING\s*&?\s*HANDLING" + _AMOUNT, re.IGNORECASE)

# "TOTAL DUE 1,346.25"
TOTAL_DUE = re.compile(r"TOTAL\s*DUE" + _AMOUNT, re.IGNORECASE)
