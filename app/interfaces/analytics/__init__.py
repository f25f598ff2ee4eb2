"""
HTTP interface for the volume analytics bounded context.
"""
