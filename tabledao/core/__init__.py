"""
Shared, cross-cutting code for the data-access layer.

`core/` contains the small building blocks every other package uses
(store wiring, settings, errors, connection keepalive). Schema declaration
lives in `models/`, query translation in `query/`, and the operations that
touch the store in `dao/`.
"""
