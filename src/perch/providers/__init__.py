"""Providers — wire bound services onto the transport.

A provider is any callable ``provider(path, service, options)`` appended
to ``app.providers``. It runs once for every service registered after it.
"""
