"""Odometer scan: photo to confirmed kilometer reading."""
