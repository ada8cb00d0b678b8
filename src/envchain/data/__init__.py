# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Bundled JSON resources (base registry and overlay schema)."""
