"""
Storage-related Django settings.

Build artifacts, icons and packaging templates are kept in the storage
registered under the "builds" alias. The default is the local filesystem;
pointing the alias at another Django storage backend moves every artifact
without touching the build pipeline.
"""
import os

# ============================
# Local Storage Configuration
# ============================

BUILD_STORAGE_ROOT = os.getenv(
    'BUILD_STORAGE_ROOT', '/opt/storage/buildhub'
)

STORAGES = {
    'default': {
        'BACKEND': 'django.core.files.storage.FileSystemStorage',
    },
    'staticfiles': {
        'BACKEND': 'django.contrib.staticfiles.storage.StaticFilesStorage',
    },
    'builds': {
        'BACKEND': 'django.core.files.storage.FileSystemStorage',
        'OPTIONS': {
            'location': BUILD_STORAGE_ROOT,
        },
    },
}

# Alias the build pipeline resolves through django.core.files.storage.storages
BUILD_STORAGE_ALIAS = os.getenv('BUILD_STORAGE_ALIAS', 'builds')

# ============================
# Download Links
# ============================

# Absolute origin used when building signed download links,
# e.g. https://build.example.com
BUILD_PUBLIC_BASE_URL = os.getenv(
    'BUILD_PUBLIC_BASE_URL', 'http://localhost:8000'
)

# Signed download links are regenerated on every read and expire after
# this many seconds.
BUILD_DOWNLOAD_URL_TTL = int(os.getenv('BUILD_DOWNLOAD_URL_TTL', 3600))

# Maximum icon size in MB; 0 disables icon upload.
MAX_IMAGE_UPLOAD_MB = float(os.getenv('MAX_IMAGE_UPLOAD_MB', 5))
