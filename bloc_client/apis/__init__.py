from .user_api import UserApiClient
from .file_upload_api import FileUploadApiClient
from .generic_api import GenericApiClient

__all__ = ["UserApiClient", "FileUploadApiClient", "GenericApiClient"]
