"""Design-matrix construction for boostprep.

Modules
-------
formula — R-style ``response ~ terms`` parsing and validation against a frame
design  — DesignMatrix + build_design_matrix() (treatment contrasts, NA policy)
quality — MatrixQualityReport for a built design matrix
"""
