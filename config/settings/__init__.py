"""Settings package for the venue project.

The `base.py` module holds configuration shared across environments;
`dev.py`, `prod.py` and `test.py` extend it with environment specific
overrides.
"""
