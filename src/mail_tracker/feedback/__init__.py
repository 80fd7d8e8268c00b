# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Delivery feedback (bounce and complaint) processing."""

from .processor import DeliveryFeedbackProcessor
from .schema import MalformedNotificationError, decode_notification

__all__ = ["DeliveryFeedbackProcessor", "MalformedNotificationError", "decode_notification"]
