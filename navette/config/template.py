"""Default configuration template.

This template is written to ~/.config/navette/config.toml
when running `navette config init`.
"""

CONFIG_TEMPLATE = """\
# navette configuration

[webdav]
url = "https://dav.jianguoyun.com/dav"
username = ""
remote_path = "/navette/"
# For the password, use the NAVETTE_WEBDAV_PASSWORD environment variable
# or set it here:
# password = ""

[sync]
prompts = true
skills = true
agents_doc = true
model_config = true
mcp_servers = false
other_config = false

# Local directories (defaults shown)
# [paths]
# accounts_dir = "~/.navette/accounts"
# codex_dir = "~/.codex"

# Identity provider used by `navette accounts refresh` (defaults shown)
# [oauth]
# token_url = "https://auth.openai.com/oauth/token"
# client_id = "app_EMoamEEZ73f0CkXaXp7hrann"
# scope = "openid profile email"
"""
