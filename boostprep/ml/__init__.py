"""
Gradient-boosting layer — LightGBM training and cross-validation on design matrices.

Modules
-------
cv      : cross_validate() — k-fold lgb.cv for a fixed round count; CVResult
booster : BoostedRegressor (fit, predict, residuals, save, load) for full-data
          retraining and residual inspection
"""
