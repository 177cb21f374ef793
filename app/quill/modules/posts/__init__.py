"""
Posts module: blog posts with comments.

- Posts are public to read; writes are permission-gated
- HTML controller and JSON API share the same service layer
- Create/update/delete actions are recorded to the audit trail
"""
