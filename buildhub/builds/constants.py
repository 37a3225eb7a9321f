"""
Constants for builds: statuses, platforms, progress stages and error types.
"""


class BuildStatus:
    """
    Build record status constants.
    """
    PENDING = 'pending'
    PROCESSING = 'processing'
    COMPLETED = 'completed'
    FAILED = 'failed'

    CHOICES = [
        (PENDING, 'Pending'),
        (PROCESSING, 'Processing'),
        (COMPLETED, 'Completed'),
        (FAILED, 'Failed'),
    ]

    @classmethod
    def get_terminal_statuses(cls):
        """
        Statuses a build never leaves.
        """
        return [cls.COMPLETED, cls.FAILED]

    @classmethod
    def get_active_statuses(cls):
        return [cls.PENDING, cls.PROCESSING]


class Platform:
    """
    Build target platforms.
    """
    ANDROID = 'android'
    ANDROID_APK = 'android-apk'
    ANDROID_SOURCE = 'android-source'
    IOS = 'ios'
    HARMONYOS = 'harmonyos'
    WINDOWS = 'windows'
    MACOS = 'macos'
    LINUX = 'linux'
    CHROME = 'chrome'
    WECHAT = 'wechat'

    CHOICES = [
        (ANDROID, 'Android (source)'),
        (ANDROID_APK, 'Android APK'),
        (ANDROID_SOURCE, 'Android APK intermediate source'),
        (IOS, 'iOS'),
        (HARMONYOS, 'HarmonyOS'),
        (WINDOWS, 'Windows'),
        (MACOS, 'macOS'),
        (LINUX, 'Linux'),
        (CHROME, 'Chrome extension'),
        (WECHAT, 'WeChat mini program'),
    ]

    @classmethod
    def get_submittable_platforms(cls):
        """
        Platforms a user may request. android-source is internal only.
        """
        return [
            cls.ANDROID,
            cls.ANDROID_APK,
            cls.IOS,
            cls.HARMONYOS,
            cls.WINDOWS,
            cls.MACOS,
            cls.LINUX,
            cls.CHROME,
            cls.WECHAT,
        ]

    @classmethod
    def get_batch_platforms(cls):
        """
        Platforms accepted in a batch submission. The CI-compiled APK
        is single-build only.
        """
        return [
            p for p in cls.get_submittable_platforms()
            if p != cls.ANDROID_APK
        ]

    @classmethod
    def get_package_name_platforms(cls):
        """
        Platforms whose package/bundle identifier must be dotted.
        """
        return [cls.ANDROID, cls.ANDROID_APK, cls.IOS, cls.HARMONYOS]

    @classmethod
    def get_ci_platforms(cls):
        return [cls.ANDROID_APK]


class BuildErrorType:
    """
    Failure categories with the message shown to users.
    """
    TIMEOUT = 'TIMEOUT'
    NETWORK = 'NETWORK'
    VALIDATION = 'VALIDATION'
    STORAGE = 'STORAGE'
    UNKNOWN = 'UNKNOWN'

    MESSAGES = {
        TIMEOUT: 'Build timed out, please try again later',
        NETWORK: 'Network error, please check your connection',
        VALIDATION: 'Validation failed, please check your input',
        STORAGE: 'Storage error, please try again later',
        UNKNOWN: 'Unknown error, please try again later',
    }


# Stage -> progress tables. Stages not listed for a platform fall back to
# the default table.
DEFAULT_STAGE_PROGRESS = {
    'initializing': 0,
    'downloading': 10,
    'extracting': 25,
    'configuring': 40,
    'processing_icons': 60,
    'packaging': 80,
    'uploading': 90,
    'finalizing': 95,
    'completed': 100,
}

STAGE_PROGRESS = {
    Platform.ANDROID: {
        **DEFAULT_STAGE_PROGRESS,
        'processing_privacy': 50,
    },
    Platform.ANDROID_APK: {
        'initializing': 0,
        'downloading': 10,
        'source_ready': 30,
        'ci_dispatched': 50,
        'compiling': 80,
        'uploading': 90,
        'completed': 100,
    },
    Platform.IOS: {
        **DEFAULT_STAGE_PROGRESS,
        'processing_privacy': 50,
    },
    Platform.HARMONYOS: {
        **DEFAULT_STAGE_PROGRESS,
        'processing_privacy': 50,
    },
    Platform.WINDOWS: {
        'initializing': 0,
        'downloading': 20,
        'configuring': 50,
        'packaging': 80,
        'uploading': 90,
        'completed': 100,
    },
}

# Progress at which an android-apk build waits on remote CI
CI_WAITING_PROGRESS = STAGE_PROGRESS[Platform.ANDROID_APK]['ci_dispatched']

# Final artifact extension of the CI pipeline
APK_EXTENSION = '.apk'

# Icon stored alongside the build
ICON_FILE_NAME = 'icon.png'

MODULE_NAME = 'builds'
