"""Host application for `archkit`: YAML catalog, project config, facts IO,
reporting and the `archspec` command line."""
