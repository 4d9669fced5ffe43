"""Provider integrations.

Each subpackage wraps one external service: an ``httpx`` client, its trigger
and action capabilities and, for polled services, a ``PollingAdapter``.
``areaflow.providers.catalog`` assembles them into registries.
"""
