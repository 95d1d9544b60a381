"""
BLS12-381 point encoding.

Points are stored in the standard compressed form: 48 bytes for G1 and
96 bytes for G2, big-endian with the flag bits in the top byte. Decoding
untrusted bytes checks that the point is on the curve and, unless disabled,
that it lies in the prime-order subgroup.
"""

from typing import Any

from py_ecc.bls.point_compression import (
    compress_G1,
    compress_G2,
    decompress_G1,
    decompress_G2,
)
from py_ecc.optimized_bls12_381 import (
    b,
    b2,
    curve_order,
    is_inf,
    is_on_curve,
    multiply,
)

from .core import ZKPError, ZKPStatus

G1_SIZE = 48
G2_SIZE = 96

# Optimized projective point as used by py_ecc.
Point = Any


def _in_subgroup(point: Point) -> bool:
    return is_inf(multiply(point, curve_order))


def g1_to_bytes(point: Point) -> bytes:
    return compress_G1(point).to_bytes(G1_SIZE, "big")


def g2_to_bytes(point: Point) -> bytes:
    z1, z2 = compress_G2(point)
    return z1.to_bytes(G1_SIZE, "big") + z2.to_bytes(G1_SIZE, "big")


def g1_from_bytes(data: bytes, subgroup_check: bool = True) -> Point:
    """
    Decode a compressed G1 point.

    Raises:
        ZKPError: With MALFORMED_DATA status if the bytes are not a valid
            point of the subgroup
    """
    if len(data) != G1_SIZE:
        raise ZKPError("G1 point must be 48 bytes", ZKPStatus.MALFORMED_DATA)
    try:
        point = decompress_G1(int.from_bytes(data, "big"))
    except (ValueError, ArithmeticError) as e:
        raise ZKPError(f"Invalid G1 point: {e}", ZKPStatus.MALFORMED_DATA) from e
    if not is_on_curve(point, b):
        raise ZKPError("G1 point not on curve", ZKPStatus.MALFORMED_DATA)
    if subgroup_check and not _in_subgroup(point):
        raise ZKPError("G1 point not in subgroup", ZKPStatus.MALFORMED_DATA)
    return point


def g2_from_bytes(data: bytes, subgroup_check: bool = True) -> Point:
    """
    Decode a compressed G2 point.

    Raises:
        ZKPError: With MALFORMED_DATA status if the bytes are not a valid
            point of the subgroup
    """
    if len(data) != G2_SIZE:
        raise ZKPError("G2 point must be 96 bytes", ZKPStatus.MALFORMED_DATA)
    z1 = int.from_bytes(data[:G1_SIZE], "big")
    z2 = int.from_bytes(data[G1_SIZE:], "big")
    try:
        point = decompress_G2((z1, z2))
    except (ValueError, ArithmeticError) as e:
        raise ZKPError(f"Invalid G2 point: {e}", ZKPStatus.MALFORMED_DATA) from e
    if not is_on_curve(point, b2):
        raise ZKPError("G2 point not on curve", ZKPStatus.MALFORMED_DATA)
    if subgroup_check and not _in_subgroup(point):
        raise ZKPError("G2 point not in subgroup", ZKPStatus.MALFORMED_DATA)
    return point
