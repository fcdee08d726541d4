"""
API routers, one per collection:

- cars.py:        /api/cars
- brands.py:      /api/brands
- categories.py:  /api/categories
- users.py:       /api/users
"""

from fastapi import Response


def cache_control(seconds: int):
    """Dependency setting the Cache-Control header for a route."""

    def _set(response: Response):
        if seconds > 0:
            response.headers["Cache-Control"] = f"public, max-age={seconds}"
        else:
            response.headers["Cache-Control"] = "no-cache"

    return _set
