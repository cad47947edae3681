from __future__ import annotations
import numpy as np

WIDTH = 16
HEIGHT = 16
PACKED_SIZE = 64
COLUMNS_PER_GROUP = 5

# A pixel is lit when its mean RGB intensity exceeds half of full scale
THRESHOLD_16BIT = 0x8000


def _to_mask(pixels) -> np.ndarray:
    """Reduce a matrix or image source to a 2-D boolean mask (rows, columns)."""
    arr = np.asarray(pixels)
    if arr.ndim == 2:
        return arr.astype(bool)
    if arr.ndim == 3 and arr.shape[2] >= 3:
        if np.issubdtype(arr.dtype, np.floating):
            # Float images are 0.0..1.0
            rgb = np.clip(arr[:, :, :3], 0.0, 1.0) * 0xFFFF
        elif np.issubdtype(arr.dtype, np.integer):
            rgb = arr[:, :, :3].astype(np.uint32)
            if arr.dtype == np.uint8:
                rgb = rgb * 257  # widen 0xFF to 0xFFFF
        else:
            raise ValueError(f"Unsupported image dtype {arr.dtype}")
        return rgb.sum(axis=2) / 3 > THRESHOLD_16BIT
    raise ValueError(f"Expected a 2-D matrix or an RGB image, got shape {arr.shape}")


def pack_bitmap(pixels) -> bytes:
    """Pack a 16x16 monochrome picture into the SC-55 64-byte LCD format.

    The display stores five columns per 16-byte group, one byte per row,
    with the leftmost column of the group in bit 4. ``pixels`` is indexed
    ``[y][x]``: a matrix of truthy values, or an RGB(A) image array such as
    ``numpy.asarray(PIL.Image)``; float images are read as 0.0-1.0. Pictures
    smaller than 16x16 are placed in the top-left corner.
    """
    mask = _to_mask(pixels)
    height, width = mask.shape
    if height > HEIGHT or width > WIDTH:
        raise ValueError(f"Image must be at most {WIDTH}x{HEIGHT}, got {width}x{height}")
    buf = bytearray(PACKED_SIZE)
    for y, x in zip(*(idx.tolist() for idx in np.nonzero(mask))):
        buf[(x // COLUMNS_PER_GROUP) * HEIGHT + y] |= 1 << (4 - x % COLUMNS_PER_GROUP)
    return bytes(buf)
