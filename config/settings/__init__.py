"""Settings package for EasyPark.

`base.py` contains common configuration shared across environments. The
`dev.py`, `prod.py` and `test.py` modules extend it with environment
specific overrides.
"""
