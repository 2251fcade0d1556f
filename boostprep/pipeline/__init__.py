"""Pipeline stages: single experiments, the full walkthrough, and full-data training.

Modules
-------
base        — PipelineStage ABC (run record lifecycle, stop-on-error)
experiment  — ExperimentSpec, run_experiment(), ExperimentStage
walkthrough — WALKTHROUGH_STEPS, run_walkthrough(), WalkthroughStage
train       — TrainStage: retrain on all rows, save artifact + metadata
"""
