"""Transport implementations for the service APIs.

Each transport module exports a `Transport` class alias for its main
transport class. Modules are imported on demand since each requires an
optional dependency:
- http: instance administration over HTTP+JSON via httpx
"""
