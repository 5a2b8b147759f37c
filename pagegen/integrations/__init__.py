"""Integrations layer - External service clients.

Integrations handle communication with external APIs and services.
They abstract the details of external service protocols.
"""

from pagegen.integrations.claude import ClaudeClient, CompletionResult
from pagegen.integrations.ollama import OllamaClient
from pagegen.integrations.sqs import (
    SQSAuthError,
    SQSCircuitOpenError,
    SQSClient,
    SQSError,
    get_sqs_client,
)
from pagegen.integrations.webhook import (
    WebhookClient,
    WebhookResult,
    close_webhook_client,
    get_webhook_client,
)

__all__ = [
    # Claude
    "ClaudeClient",
    "CompletionResult",
    # Ollama
    "OllamaClient",
    # SQS
    "SQSAuthError",
    "SQSCircuitOpenError",
    "SQSClient",
    "SQSError",
    "get_sqs_client",
    # Webhooks
    "WebhookClient",
    "WebhookResult",
    "close_webhook_client",
    "get_webhook_client",
]
