from ._b64 import (
    array_to_payload,
    decode_float64,
    encode_float64,
    payload_to_array,
)

__all__ = [
    array_to_payload.__name__,
    decode_float64.__name__,
    encode_float64.__name__,
    payload_to_array.__name__,
]
