"""Core protocol layers: types, authentication, request execution and the client."""
