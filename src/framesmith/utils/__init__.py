# SPDX-License-Identifier: Apache-2.0
"""Shared helpers (environment configuration and logging)."""
