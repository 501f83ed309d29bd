"""
JSON persistence for named tensors.

A saved file is a JSON object mapping each name to
`{"shape": [...], "data": "<base64 little-endian float64>"}`. Only values are
stored; gradients and autograd history are not.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Mapping, Union

from ..encoding import array_to_payload, payload_to_array
from ._tensor import Tensor

logger = logging.getLogger(__name__)

PathLike = Union[str, "os.PathLike[str]"]


def save_tensors(path: PathLike, tensors: Mapping[str, Tensor]) -> None:
    """
    Write `tensors` to `path` as JSON.

    Parameters
    ----------
    path : str | os.PathLike
        Destination file; overwritten if it exists.
    tensors : Mapping[str, Tensor]
        Name to tensor mapping. Names must be strings.
    """
    doc = {}
    for name, t in tensors.items():
        if not isinstance(name, str):
            raise TypeError(f"tensor names must be str, got {type(name).__name__}")
        if not isinstance(t, Tensor):
            raise TypeError(f"{name!r} is not a Tensor")
        doc[name] = array_to_payload(t._data)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(doc, f)
    logger.debug("saved %d tensors to %s", len(doc), path)


def load_tensors(path: PathLike) -> dict[str, Tensor]:
    """
    Read tensors written by `save_tensors`.

    Returns
    -------
    dict[str, Tensor]
        Fresh owning tensors that do not require gradients.

    Raises
    ------
    ValueError
        If the file is not a JSON object of tensor payloads.
    """
    with open(path, "r", encoding="utf-8") as f:
        doc = json.load(f)
    if not isinstance(doc, dict):
        raise ValueError(f"{path}: expected a JSON object of tensors")
    out = {name: Tensor._from_numpy(payload_to_array(p)) for name, p in doc.items()}
    logger.debug("loaded %d tensors from %s", len(out), path)
    return out
