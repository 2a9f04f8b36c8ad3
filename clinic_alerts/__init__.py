"""Dosing holds, patient precautions and facility alerts for clinic staff."""

__version__ = "0.1.0"
