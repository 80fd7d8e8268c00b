# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Sent email entity: correlation records and their metadata schema."""

from .schema import SentEmailMeta, meta_merger
from .table import SentEmailsTable

__all__ = ["SentEmailMeta", "SentEmailsTable", "meta_merger"]
