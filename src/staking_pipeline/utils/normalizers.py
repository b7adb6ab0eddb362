import json
import numbers
from decimal import Decimal, InvalidOperation

import pandas as pd
from web3 import Web3


def normalize_bytes_columns(df: pd.DataFrame) -> pd.DataFrame:
    """Convert all bytes-like columns in a DataFrame to hex strings using Web3.to_hex."""
    for col in df.columns:
        df[col] = df[col].apply(
            lambda x: (
                Web3.to_hex(x) if isinstance(x, (bytes, bytearray, memoryview)) else x
            )
        )
    return df


def normalize_address(value) -> str:
    """Lowercase 0x-prefixed hex address."""
    if isinstance(value, (bytes, bytearray, memoryview)):
        value = Web3.to_hex(value)
    if is_missing(value):
        return ""
    return str(value).lower()


def parse_int(value, default: int = 0) -> int:
    """
    Parse uint256-style values stored as numeric, decimal string or hex string.
    NaN/None map to the default.
    """
    if value is None or value is pd.NA:
        return default
    if isinstance(value, float) and pd.isna(value):
        return default
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (numbers.Integral, Decimal)):
        return int(value)
    if isinstance(value, float):
        return int(value)
    text = str(value).strip()
    if not text:
        return default
    if text.startswith(("0x", "0X")):
        return int(text, 16)
    try:
        return int(Decimal(text))
    except InvalidOperation:
        raise ValueError(f"Not an integer: {value!r}")


def parse_int_list(value) -> list:
    """
    Parse array columns: Python lists, JSON arrays ("[1, 2]") or Postgres
    array literals ("{1,2}").
    """
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [parse_int(item) for item in value]
    if isinstance(value, float) and pd.isna(value):
        return []
    text = str(value).strip()
    if not text:
        return []
    if text.startswith("{") and text.endswith("}"):
        inner = text[1:-1].strip()
        return [parse_int(item) for item in inner.split(",")] if inner else []
    return [parse_int(item) for item in json.loads(text)]


def parse_str_list(value) -> list:
    if is_missing(value):
        return []
    if isinstance(value, (list, tuple)):
        return [normalize_address(item) for item in value]
    text = str(value).strip()
    if text.startswith("{") and text.endswith("}"):
        inner = text[1:-1].strip()
        return [item.strip().strip('"').lower() for item in inner.split(",")] if inner else []
    return [normalize_address(item) for item in json.loads(text)]


def is_missing(value) -> bool:
    """None, NaN or pd.NA (columns absent from a concatenated frame come back as NaN)."""
    if value is None or value is pd.NA:
        return True
    return isinstance(value, float) and pd.isna(value)
