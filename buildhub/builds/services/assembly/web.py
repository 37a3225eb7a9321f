"""
Web-hosted assemblers: Chrome extension and WeChat mini program.
"""
from ...constants import Platform
from .base import ZipTemplateAssembler


def _point_app_config(tree, path, build):
    if not tree.exists(path):
        return
    app_config = tree.read_json(path)
    general = app_config.get("general")
    if isinstance(general, dict):
        general["initialUrl"] = build.url
        general["appName"] = build.app_name
    tree.write_json(path, app_config)


class ChromeExtensionAssembler(ZipTemplateAssembler):
    platform = Platform.CHROME
    marker = "manifest.json"
    output_name = "chrome-extension.zip"

    def patch(self, tree, root, build):
        manifest_path = f"{root}manifest.json"
        manifest = tree.read_json(manifest_path)
        manifest["name"] = build.app_name
        manifest["version"] = build.version_name
        description = (build.config or {}).get("description")
        if description:
            manifest["description"] = description
        tree.write_json(manifest_path, manifest)

        _point_app_config(tree, f"{root}appConfig.json", build)

    def icon_targets(self, root):
        return [f"{root}icons/icon{size}.png" for size in (16, 48, 128)]


class WeChatAssembler(ZipTemplateAssembler):
    platform = Platform.WECHAT
    marker = "project.config.json"
    output_name = "wechat-miniprogram.zip"

    def patch(self, tree, root, build):
        project_path = f"{root}project.config.json"
        project_config = tree.read_json(project_path)
        project_config["projectname"] = build.app_name
        app_id = (build.config or {}).get("app_id")
        if app_id:
            project_config["appid"] = app_id
        tree.write_json(project_path, project_config)

        app_json_path = f"{root}app.json"
        if tree.exists(app_json_path):
            app_json = tree.read_json(app_json_path)
            if isinstance(app_json.get("window"), dict):
                app_json["window"]["navigationBarTitleText"] = build.app_name
            tree.write_json(app_json_path, app_json)

        _point_app_config(tree, f"{root}appConfig.json", build)
