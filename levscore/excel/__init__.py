"""Spreadsheet reading, header resolution and row coercion."""
