from typing import Optional

import cv2
import numpy as np


def load_image_from_bytes(image_bytes: bytes) -> Optional[np.ndarray]:
    """
    Load image from bytes to numpy array (BGR format for OpenCV)

    Returns None when the bytes cannot be decoded as an image.
    """
    if not image_bytes:
        return None
    nparr = np.frombuffer(image_bytes, np.uint8)
    return cv2.imdecode(nparr, cv2.IMREAD_COLOR)

