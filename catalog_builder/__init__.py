"""
Catalog builder package for the product configuration admin tool.

This package holds the Group/Range/Product catalog store, converts it to and
from the six-step wizard document, and reconciles the catalog against the
folder hierarchy kept in an S3-compatible bucket (DigitalOcean Spaces).
"""
