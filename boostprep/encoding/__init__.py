"""Categorical encoding strategies.

Modules
-------
base     — CategoricalEncoder ABC (validation + missing-value contract)
numeric  — NumericEncoder: ordinal float codes
binary   — BinaryEncoder: base-2 digit columns via category_encoders
onehot   — OneHotEncoder: sorted-level categoricals, expanded by the design builder
registry — ENCODER_REGISTRY, get_encoder(), encode_frame()
"""
