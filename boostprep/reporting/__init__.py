"""
boostprep.reporting — Plain-text formatting and JSON export of results.

Modules:
  formatters — ASCII tables for CV curves, step comparisons and residuals,
               plus ``write_results_json()``.
"""
