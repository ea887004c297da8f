"""
API Middleware - Request/response processing

Middleware runs before and after each request. Order matters: middleware
added last wraps the others, so it sees the request first and the response
last (like a stack).
"""
