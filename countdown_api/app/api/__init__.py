"""
API package.

``router`` aggregates the domain routers; ``create_app`` mounts it under
the ``/api`` prefix.
"""
