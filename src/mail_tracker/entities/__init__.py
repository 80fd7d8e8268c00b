# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Entity table managers."""

from .sent_email import SentEmailMeta, SentEmailsTable, meta_merger

__all__ = ["SentEmailMeta", "SentEmailsTable", "meta_merger"]
