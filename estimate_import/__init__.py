"""Spreadsheet import & normalization engine for contractor estimate exports."""

__version__ = "0.1.0"
