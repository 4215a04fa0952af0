"""
Domain layer package housing the multipart request model and its parsers.
"""
