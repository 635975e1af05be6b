"""Generic utilities shared by the analyses."""
