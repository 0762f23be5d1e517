from .main import AdminUploader, admin_upload

__all__ = ["AdminUploader", "admin_upload"]
