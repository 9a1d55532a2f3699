"""Default configuration values."""

from podpipe.config.schema import GlobalConfig

DEFAULT_GLOBAL_CONFIG = GlobalConfig()


def get_default_config_content() -> str:
    """Get default config.yaml content as a commented YAML string."""
    return """# Podpipe configuration
version: "1"

# Logging level: DEBUG, INFO, WARNING, ERROR
log_level: INFO

storage:
  # Root directory of the local object store (defaults to the XDG data dir)
  # root: ~/.local/share/podpipe/store
  # Base URL under which stored objects are served publicly
  public_base_url: ""

site:
  website_url: ""
  # deploy_hook_url: https://api.example.com/deploy-hooks/...
  dev_mode: false

podcast:
  title: Podcast
  language: en
  category: Technology

transcription:
  lock_timeout_minutes: 60
  queue_max_limit: 10

social:
  enabled: false
  service_url: https://bsky.social
  # identifier: handle.bsky.social
  # password is stored encrypted; set it with PODPIPE_SOCIAL_PASSWORD instead

http:
  timeout_seconds: 30
  retry_attempts: 3
"""
