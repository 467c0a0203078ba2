"""Image preprocessing module"""
from .image_preprocessor import CapturedImage, PreparedImage, prepare_image, decode_image

__all__ = ['CapturedImage', 'PreparedImage', 'prepare_image', 'decode_image']
