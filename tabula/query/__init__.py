"""Command-line querying of JSON, YAML and CSV data files."""
