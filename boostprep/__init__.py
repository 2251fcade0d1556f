"""boostprep — categorical encoding, design matrices and cross-validated boosting."""

__version__ = "0.3.0"
