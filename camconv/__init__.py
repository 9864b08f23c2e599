"""Conversions of raw camera frames to JPEG, BMP and packed RGB888."""

__version__ = "0.1.0"
__all__ = ["pixformat", "yuv", "jpeg_core", "jpeg_encoder", "to_jpg", "to_bmp"]