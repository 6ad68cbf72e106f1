# SPDX-License-Identifier: Apache-2.0
"""HTTP surface for UI collaborators (FastAPI)."""
