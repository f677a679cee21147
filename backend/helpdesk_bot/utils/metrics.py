# /helpdesk_bot/utils/metrics.py

from prometheus_client import Counter, Histogram

# This file defines all Prometheus metrics used for application monitoring.
# Centralizing them here makes them easy to find and manage.

# Dialog Metrics
chat_messages_counter = Counter('chat_messages_total', 'Inbound chat messages by routing decision', ['route'])
flow_runs_counter = Counter('flow_runs_total', 'Flow invocations by outcome', ['flow', 'outcome'])
dialog_errors_counter = Counter('dialog_errors_total', 'Unexpected errors raised inside flow steps', ['flow'])

# External Calls
external_calls_counter = Counter('external_calls_total', 'Calls to external collaborators', ['service', 'status'])

# Performance Metrics
response_time_histogram = Histogram('response_time_seconds', 'Response time in seconds', ['endpoint'])
