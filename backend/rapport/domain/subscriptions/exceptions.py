"""Domain-level exceptions for the subscription ledger."""

from __future__ import annotations

from rapport.domain.errors import Conflict, NotFound, ValidationFailed


class SubscriptionExists(Conflict):
	code = "SUBSCRIPTION_EXISTS"
	message = "User already has an active subscription"


class NoSubscription(NotFound):
	code = "NO_SUBSCRIPTION"
	message = "No active subscription found"


class WebhookError(ValidationFailed):
	code = "WEBHOOK_ERROR"
	message = "Webhook payload could not be processed"
