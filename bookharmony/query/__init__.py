"""Query-intent building and transport.

A `QueryBuilder` accumulates a declarative description of one operation on a remote collection; it
is reduced to a frozen `QueryRequest` and sent by `QueryClient` to the backend proxy.
"""
