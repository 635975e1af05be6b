"""Application-level support: errors and analysis configuration."""
