"""
Infrastructure module - logging, mail transport and template rendering.
"""

from .logging_config import setup_logging

from .mailer import (
    MailTransport,
    MailTransportError,
    SmtpMailTransport,
    build_message,
)

from .templates import (
    TemplateEngine,
    TemplateEngineRegistry,
    TemplateRenderError,
    TemplateResourceLoader,
    Jinja2TemplateEngine,
    FormatTemplateEngine,
)

__all__ = [
    # logging
    "setup_logging",
    # mailer
    "MailTransport",
    "MailTransportError",
    "SmtpMailTransport",
    "build_message",
    # templates
    "TemplateEngine",
    "TemplateEngineRegistry",
    "TemplateRenderError",
    "TemplateResourceLoader",
    "Jinja2TemplateEngine",
    "FormatTemplateEngine",
]
