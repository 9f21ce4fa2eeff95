"""
Status & Notification Policy.

Sends an e-mail when a job's rollup status or enabled flag changes:
- ERROR: rollup status moved into FAILED
- NORMAL: rollup status moved into FINISHED (back to normal)
- ENABLE / DISABLE: enabled flag flipped

Callers decide *whether* a transition happened; this module renders and
delivers the message. Render and transport failures are logged and
swallowed here so they never affect the status or log writes that
triggered them.
"""

import logging
from enum import Enum
from pathlib import Path
from typing import Optional

from src.infra.mailer import MailTransport, MailTransportError
from src.infra.templates import (
    TemplateEngineRegistry,
    TemplateRenderError,
    TemplateResourceLoader,
)

from .config import SchedulerConfig
from .entities import JobDefinition
from .errors import SchedulerError
from .persistence import PersistenceAdapter


logger = logging.getLogger(__name__)

DEFAULT_TEMPLATES_DIR = Path(__file__).parent / "templates"


class NotificationEvent(str, Enum):
    """Transition kinds that produce a notification."""

    ERROR = "error"
    NORMAL = "normal"
    ENABLE = "enable"
    DISABLE = "disable"

    @property
    def default_template(self) -> str:
        """Built-in template resource for this event."""
        return f"template-{self.value}.txt"


class NotificationPolicy:
    """Renders and sends transition notifications."""

    def __init__(
        self,
        persistence: PersistenceAdapter,
        config: SchedulerConfig,
        mail_transport: Optional[MailTransport] = None,
        template_registry: Optional[TemplateEngineRegistry] = None,
        template_loader: Optional[TemplateResourceLoader] = None,
    ):
        self.persistence = persistence
        self.config = config
        self.mail_transport = mail_transport
        self.template_registry = template_registry or TemplateEngineRegistry.default()
        self.template_loader = template_loader or TemplateResourceLoader(DEFAULT_TEMPLATES_DIR)

    def subject_for(self, event: NotificationEvent, job: JobDefinition) -> str:
        subjects = {
            NotificationEvent.ERROR: self.config.email_subject_error,
            NotificationEvent.NORMAL: self.config.email_subject_normal,
            NotificationEvent.ENABLE: self.config.email_subject_enable,
            NotificationEvent.DISABLE: self.config.email_subject_disable,
        }
        return subjects[event].replace("%s", job.name)

    def template_location_for(self, event: NotificationEvent) -> Optional[str]:
        locations = {
            NotificationEvent.ERROR: self.config.email_template_error,
            NotificationEvent.NORMAL: self.config.email_template_normal,
            NotificationEvent.ENABLE: self.config.email_template_enable,
            NotificationEvent.DISABLE: self.config.email_template_disable,
        }
        return locations[event]

    def template_variables(self, job: JobDefinition) -> dict:
        return {
            "job.name": job.name,
            "job.message": job.message,
            "job.scheme": self.config.email_url_scheme,
            "job.host": self.config.email_url_host,
            "job.port": self.config.email_url_port,
        }

    def prepare_message(self, job: JobDefinition, event: NotificationEvent) -> Optional[str]:
        """
        Render the notification body for a job.

        The configured template for the event is used when it resolves,
        otherwise the built-in default.

        Returns:
            Plain-text body, or None if no template resolves or rendering fails
        """
        template = self.template_loader.load(self.template_location_for(event))
        if template is None:
            template = self.template_loader.load(event.default_template)
            if template is None:
                logger.error(
                    "Template for the e-mail has not been set nor the default one is available"
                )
                return None

        try:
            rendered = self.template_registry.render(
                self.config.template_engine,
                template,
                self.template_variables(job),
            )
        except TemplateRenderError as e:
            logger.error(f"Error on generating the e-mail body for job {job.name}: {e}", exc_info=True)
            return None

        return rendered.decode("utf-8")

    def resolve_recipients(self, job_name: str) -> list[str]:
        """
        Recipients for a job's notifications.

        Watchers of the job if it has any, otherwise the global recipients.
        """
        watchers = [watcher.email for watcher in self.persistence.list_job_emails(job_name)]
        if watchers:
            return watchers
        return list(self.config.email_recipients)

    def notify(self, job: JobDefinition, event: NotificationEvent) -> bool:
        """
        Render and send a notification. Never raises.

        Returns:
            True if a message was handed to the mail transport
        """
        logger.info(f"Job {job.name} transition: {event.value}")

        try:
            body = self.prepare_message(job, event)
            if body is None:
                return False

            return self.send(job, self.subject_for(event, job), body)
        except Exception as e:
            logger.error(f"Notification for job {job.name} failed: {e}", exc_info=True)
            return False

    def send(self, job: JobDefinition, subject: str, body: str) -> bool:
        """Deliver a rendered notification. Never raises."""
        try:
            recipients = self.resolve_recipients(job.name)

            if not self.config.email_sender or not recipients:
                if self.config.email_recipients_line is not None:
                    logger.error("SCHEDULER_EMAIL_* environment variables are not set correctly")
                else:
                    logger.debug(f"No sender or recipients for job {job.name}, notification skipped")
                return False

            if self.mail_transport is None:
                logger.warning(f"No mail transport configured, notification for job {job.name} skipped")
                return False

            parts = [{"contentType": "text/plain", "type": "text", "text": body}]
            self.mail_transport.send(
                self.config.email_sender,
                recipients,
                None,
                None,
                subject,
                parts,
            )
        except (MailTransportError, SchedulerError) as e:
            logger.error(f"Sending an e-mail failed with: {e}", exc_info=True)
            return False
        except Exception as e:
            logger.error(f"Unexpected error sending an e-mail for job {job.name}: {e}", exc_info=True)
            return False

        return True
