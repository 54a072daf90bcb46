"""
Module 09C - Identity Registry CLI

Command-line interface for the identity registry.

Usage:
    python -m idreg_cli submit <subject_id> --national-id ... --key ...
    python -m idreg_cli approve <subject_id>
    python -m idreg_cli verify <subject_id> --national-id ... --key ...
    python -m idreg_cli info
"""

__version__ = "0.1.0"
