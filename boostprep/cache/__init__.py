"""On-disk cache of encoded design matrices.

Modules
-------
fingerprint  — dataset_fingerprint(), cache_key()
matrix_cache — MatrixCache: Parquet payload + JSON manifest per key
"""
