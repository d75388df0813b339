from __future__ import annotations

import base64
import unittest
from types import SimpleNamespace
from unittest.mock import patch

from app.errors import ApiError
from app.services.uploads import validate_image_data_url


def _data_url(payload: bytes, mime: str = "image/png") -> str:
    return f"data:{mime};base64,{base64.b64encode(payload).decode('ascii')}"


class ImageUploadValidationTests(unittest.TestCase):
    def test_blank_values_clear_the_field(self) -> None:
        self.assertIsNone(validate_image_data_url(None, field="photo_url"))
        self.assertIsNone(validate_image_data_url("   ", field="photo_url"))

    def test_image_data_url_is_accepted(self) -> None:
        value = _data_url(b"\x89PNG fake")

        self.assertEqual(validate_image_data_url(f"  {value} ", field="photo_url"), value)

    def test_non_image_payloads_are_rejected(self) -> None:
        for value in ("https://example.com/a.png", _data_url(b"%PDF", mime="application/pdf"), "data:image/png;base64,@@@"):
            with self.subTest(value=value):
                with self.assertRaises(ApiError) as ctx:
                    validate_image_data_url(value, field="photo_url")
                self.assertEqual(ctx.exception.code, "INVALID_UPLOAD")
                self.assertEqual(ctx.exception.status_code, 422)

    def test_oversized_upload_is_rejected(self) -> None:
        with patch("app.services.uploads.get_settings", return_value=SimpleNamespace(max_upload_bytes=4)):
            with self.assertRaises(ApiError) as ctx:
                validate_image_data_url(_data_url(b"12345"), field="transaction_slip_url")

        self.assertEqual(ctx.exception.status_code, 413)
        self.assertEqual(ctx.exception.code, "UPLOAD_TOO_LARGE")
        self.assertIn("transaction_slip_url", ctx.exception.message)


if __name__ == "__main__":
    unittest.main()
