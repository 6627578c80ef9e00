"""Export module for JSON reports."""
from export.json_exporter import export_json

__all__ = ["export_json"]
