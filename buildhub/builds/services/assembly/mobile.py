"""
Mobile assemblers: Android source project, iOS project, HarmonyOS project.
"""
import re

from ...constants import Platform
from .base import ZipTemplateAssembler, parse_version_code


def _update_general(tree, path, values):
    if not tree.exists(path):
        return False
    app_config = tree.read_json(path)
    general = app_config.get("general")
    if isinstance(general, dict):
        general.update(values)
    tree.write_json(path, app_config)
    return True


class AndroidAssembler(ZipTemplateAssembler):
    """
    Android Studio project with assets/appConfig.json.
    """

    platform = Platform.ANDROID
    marker = "app/src/main/assets/appConfig.json"
    output_name = "android-source.zip"

    def patch(self, tree, root, build):
        assets = f"{root}app/src/main/assets"
        _update_general(tree, f"{assets}/appConfig.json", {
            "initialUrl": build.url,
            "appName": build.app_name,
            "androidPackageName": build.package_name,
            "androidVersionName": build.version_name,
            "androidVersionCode": parse_version_code(build.version_code),
        })

        manifest = f"{root}app/src/main/AndroidManifest.xml"
        if tree.exists(manifest):
            content = re.sub(
                r'android:versionName="[^"]*"',
                f'android:versionName="{build.version_name}"',
                tree.read_text(manifest),
                count=1,
            )
            tree.write_text(manifest, content)

        self.write_privacy_policy(
            tree, f"{assets}/privacy_policy.md", build
        )

    def icon_targets(self, root):
        res = f"{root}app/src/main/res"
        return [
            f"{res}/mipmap-xxxhdpi/ic_launcher.png",
            f"{res}/mipmap-xxxhdpi/ic_launcher_round.png",
        ]


class IOSAssembler(ZipTemplateAssembler):
    """
    Xcode project with LeanIOS/appConfig.json.
    """

    platform = Platform.IOS
    marker = "LeanIOS/appConfig.json"
    output_name = "ios-source.zip"

    def patch(self, tree, root, build):
        _update_general(tree, f"{root}LeanIOS/appConfig.json", {
            "initialUrl": build.url,
            "appName": build.app_name,
            "iosBundleId": build.package_name,
            "iosVersionName": build.version_name,
            "iosBuildNumber": parse_version_code(build.version_code),
        })

        for name in list(tree.files):
            if name.startswith(root) and name.endswith("project.pbxproj"):
                content = tree.read_text(name)
                content = re.sub(
                    r"PRODUCT_BUNDLE_IDENTIFIER = [^;]+;",
                    f"PRODUCT_BUNDLE_IDENTIFIER = {build.package_name};",
                    content,
                )
                content = re.sub(
                    r"MARKETING_VERSION = [^;]+;",
                    f"MARKETING_VERSION = {build.version_name};",
                    content,
                )
                tree.write_text(name, content)

        self.write_privacy_policy(
            tree, f"{root}LeanIOS/privacy_policy.md", build
        )

    def icon_targets(self, root):
        return [
            f"{root}LeanIOS/Images.xcassets/AppIcon.appiconset/"
            f"icon-1024.png",
        ]


class HarmonyOSAssembler(ZipTemplateAssembler):
    """
    DevEco project with AppScope/app.json5 and a root appConfig.json.
    """

    platform = Platform.HARMONYOS
    marker = "AppScope/app.json5"
    output_name = "harmonyos-source.zip"

    def patch(self, tree, root, build):
        version_code = parse_version_code(build.version_code)
        _update_general(tree, f"{root}appConfig.json", {
            "initialUrl": build.url,
            "appName": build.app_name,
            "harmonyBundleName": build.package_name,
            "harmonyVersionName": build.version_name,
            "harmonyVersionCode": version_code,
        })

        # app.json5 is not strict JSON; patch values in place
        app_json5 = f"{root}AppScope/app.json5"
        content = tree.read_text(app_json5)
        content = re.sub(
            r'"bundleName"\s*:\s*"[^"]*"',
            f'"bundleName": "{build.package_name}"',
            content,
        )
        content = re.sub(
            r'"versionName"\s*:\s*"[^"]*"',
            f'"versionName": "{build.version_name}"',
            content,
        )
        content = re.sub(
            r'"versionCode"\s*:\s*\d+',
            f'"versionCode": {version_code}',
            content,
        )
        tree.write_text(app_json5, content)

        self.write_privacy_policy(
            tree,
            f"{root}entry/src/main/resources/rawfile/privacy_policy.md",
            build,
        )

    def icon_targets(self, root):
        return [f"{root}AppScope/resources/base/media/app_icon.png"]
