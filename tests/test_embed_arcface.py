import numpy as np
import pytest

cv2 = pytest.importorskip("cv2")

from rollcall.recognition.embed_arcface import decode_image


def test_decode_image_from_bytes_and_path(tmp_path):
    image = np.zeros((20, 30, 3), dtype=np.uint8)
    image[:, :15] = (255, 0, 0)
    ok, encoded = cv2.imencode(".png", image)
    assert ok

    decoded = decode_image(encoded.tobytes())
    assert decoded.shape == (20, 30, 3)
    np.testing.assert_array_equal(decoded, image)

    path = tmp_path / "face.png"
    path.write_bytes(encoded.tobytes())
    np.testing.assert_array_equal(decode_image(path), image)
    np.testing.assert_array_equal(decode_image(str(path)), image)


def test_decode_image_expands_grayscale():
    gray = np.full((8, 8), 128, dtype=np.uint8)
    assert decode_image(gray).shape == (8, 8, 3)


def test_decode_image_errors(tmp_path):
    with pytest.raises(ValueError):
        decode_image(b"not an image")
    with pytest.raises(FileNotFoundError):
        decode_image(tmp_path / "missing.jpg")
    with pytest.raises(TypeError):
        decode_image(42)
