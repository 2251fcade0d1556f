"""Dataset loading and synthetic missing-value injection.

Modules
-------
loader  — load_dataset() from a local CSV or an http(s) URL; identifier dropping
missing — inject_missing() for the missing-value walkthrough steps
"""
