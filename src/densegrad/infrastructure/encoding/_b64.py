"""
Base64 encoding of float64 buffers for JSON documents.

Tensor values are stored as little-endian float64 bytes so saved files are
bit-exact and independent of the host byte order.
"""

from __future__ import annotations

import base64
from typing import Any, Dict, Sequence

import numpy as np

WIRE_DTYPE = np.dtype("<f8")


def encode_float64(values: np.ndarray) -> str:
    """
    Encode an array's values (row-major) as a base64 ASCII string.
    """
    a = np.ascontiguousarray(values, dtype=WIRE_DTYPE)
    return base64.b64encode(a.tobytes(order="C")).decode("ascii")


def decode_float64(s: str, count: int) -> np.ndarray:
    """
    Decode a base64 string back into a flat, owning float64 array.

    Raises
    ------
    ValueError
        If the string is not valid base64 or does not hold `count` values.
    """
    raw = base64.b64decode(s.encode("ascii"), validate=True)
    if len(raw) != count * WIRE_DTYPE.itemsize:
        raise ValueError(
            f"payload holds {len(raw) // WIRE_DTYPE.itemsize} values, expected {count}"
        )
    return np.frombuffer(raw, dtype=WIRE_DTYPE).astype(np.float64)


def array_to_payload(arr: np.ndarray) -> Dict[str, Any]:
    """
    Serialize an array into a JSON-safe payload.

    Returns
    -------
    dict
        {"shape": [...], "data": "<base64 little-endian float64>"}
    """
    a = np.asarray(arr)
    return {"shape": [int(d) for d in a.shape], "data": encode_float64(a)}


def payload_to_array(payload: Dict[str, Any]) -> np.ndarray:
    """
    Deserialize a payload produced by `array_to_payload`.

    Raises
    ------
    ValueError
        If the payload is missing fields or its data does not match its shape.
    """
    try:
        shape: Sequence[int] = tuple(int(d) for d in payload["shape"])
        data = str(payload["data"])
    except (KeyError, TypeError) as e:
        raise ValueError(f"malformed tensor payload: {e}") from e
    count = int(np.prod(shape)) if shape else 1
    return decode_float64(data, count).reshape(shape)
