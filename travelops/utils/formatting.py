"""
Number formatting used across the dashboards.
"""
import math
import re

_THOUSANDS = re.compile(r'\B(?=(\d{3})+(?!\d))')
_LEADING_NUMBER = re.compile(r'\s*([-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?)')


def format_currency(value):
    """
    Format as Indonesian Rupiah, e.g. 1234567.5 -> 'Rp 1.234.567,5'.

    Empty values count as 0. Values that aren't numbers are returned unchanged.
    """
    try:
        number = float(value or 0)
    except (TypeError, ValueError):
        return value
    if not math.isfinite(number):
        return value

    # id-ID: '.' groups thousands, ',' separates up to 3 decimals
    text = f"{abs(number):,.3f}".rstrip('0').rstrip('.')
    text = text.replace(',', '_').replace('.', ',').replace('_', '.')
    sign = '-' if number < 0 and text != '0' else ''
    return f"Rp {sign}{text}"


def format_number_with_commas(value) -> str:
    """'1234567.89' -> '1,234,567.89'. Anything but digits and dots is dropped."""
    digits = re.sub(r'[^\d.]', '', str(value))
    parts = digits.split('.')
    parts[0] = _THOUSANDS.sub(',', parts[0])
    return '.'.join(parts)


def parse_formatted_number(value) -> float:
    """'1,234,567.89' -> 1234567.89; 0 when no number can be read."""
    match = _LEADING_NUMBER.match(str(value).replace(',', ''))
    if not match:
        return 0
    number = float(match.group(1))
    return number if math.isfinite(number) else 0
