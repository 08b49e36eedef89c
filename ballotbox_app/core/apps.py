import atexit

from django.apps import AppConfig


def _patch_jazzmin_format_html() -> None:
    """Let Jazzmin's paginator tag run on Django versions that reject
    `format_html()` calls without arguments."""

    try:
        import jazzmin.templatetags.jazzmin as jazzmin_tags
    except ImportError:
        return

    if getattr(jazzmin_tags, "_core_format_html_patched", False):
        return

    from django.utils.html import format_html
    from django.utils.safestring import mark_safe

    def compat_format_html(format_string, *args, **kwargs):
        if not args and not kwargs:
            return mark_safe(format_string)
        return format_html(format_string, *args, **kwargs)

    jazzmin_tags.format_html = compat_format_html
    jazzmin_tags._core_format_html_patched = True


class CoreConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'core'
    verbose_name = 'Elections'

    def ready(self):
        _patch_jazzmin_format_html()

        from core.vote_notifications import shutdown_notification_executor

        atexit.register(shutdown_notification_executor)
