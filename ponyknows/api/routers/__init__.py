from . import auth, files, pages, roles, users

__all__ = ["auth", "files", "pages", "roles", "users"]
