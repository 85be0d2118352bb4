from __future__ import annotations

# ==== Grid =================================================================

# Side length used when a puzzle does not say otherwise (values 1..9).
DEFAULT_SIZE: int = 9

# ==== Logging ==============================================================

# Name of the logger shared by every module of the engine.
LOGGER_NAME: str = "variant_logic"

# ==== Explanations =========================================================

# Indent applied to each nesting level when a composite step is rendered.
SUB_STEP_INDENT: str = "    "

# ==== Driver ===============================================================

# How often (seconds) a long brute-force search reports its progress.
PROGRESS_REPORT_SECONDS: float = 60.0

# Upper bound on logical steps taken by a single logical_solve() call.
MAX_LOGICAL_STEPS: int = 10000
