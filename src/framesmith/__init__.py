# SPDX-License-Identifier: Apache-2.0
"""framesmith: plan and execute AI video-editing steps.

The package is organized around three layers:

- ``framesmith.catalog``: the static registry of model operations.
- ``framesmith.planner``: rule-based intent classification and plan synthesis.
- ``framesmith.engine``: the step lifecycle state machine and plan drivers.

Model invocations are delegated to an execution collaborator from
``framesmith.backends``; ``framesmith.session`` ties everything together for a
single editing session.
"""

__version__ = "0.3.0"

__all__ = ["__version__"]
