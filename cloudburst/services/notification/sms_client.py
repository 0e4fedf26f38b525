"""
SMS Notification Client
Sends alert text messages through Twilio or a generic HTTP gateway
"""
import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional

import requests

from cloudburst.config.app_config import SMSConfig
from cloudburst.core.error_handling import ConfigurationError, ValidationError
from cloudburst.models.notification import (
    DeliveryResult,
    SMSDispatchResponse,
    SMSProviderStatus,
)

logger = logging.getLogger(__name__)

SUPPORTED_PROVIDERS = ("twilio", "http")


def _twilio_client_class():
    """The Twilio REST client class, or None when the SDK is not installed"""
    try:
        from twilio.rest import Client
    except ImportError:
        return None
    return Client


class SMSClient:
    """
    Send SMS notifications to a list of recipients

    Supports two gateways:
    - Twilio (recommended)
    - Any HTTP gateway taking a bearer key and a JSON body

    An unconfigured client is still usable: ``send`` then reports
    ``configured: false`` without contacting anything, and callers fall back
    to recording the notification.
    """

    def __init__(self, config: Optional[SMSConfig] = None):
        """
        Initialize SMS client

        Args:
            config: Provider configuration (credentials may be missing)

        Raises:
            ConfigurationError: If the provider name is unknown
        """
        self.config = config or SMSConfig()
        self.provider = self.config.provider

        if self.provider not in SUPPORTED_PROVIDERS:
            raise ConfigurationError(
                f"Unsupported SMS provider: {self.provider}",
                details={"supported": list(SUPPORTED_PROVIDERS)}
            )

        # send_async runs the blocking provider calls here
        self.executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="alert-sms")
        self.client = None

        twilio_client_class = _twilio_client_class()
        self.sdk_installed = twilio_client_class is not None
        if self.provider == "twilio" and not self.sdk_installed:
            logger.warning("Twilio SDK not installed, SMS alerts will only be logged")

        if self.configured and self.provider == "twilio":
            self.client = twilio_client_class(self.config.account_sid, self.config.auth_token)

        logger.info(
            f"SMSClient initialized with provider: {self.provider} "
            f"({'configured' if self.configured else 'not configured'})"
        )

    @property
    def credentials_present(self) -> bool:
        if self.provider == "twilio":
            return all([
                self.config.account_sid,
                self.config.auth_token,
                self.config.from_number,
            ])
        return all([self.config.api_url, self.config.api_key])

    @property
    def configured(self) -> bool:
        """Enabled with complete credentials"""
        if not (self.config.enabled and self.credentials_present):
            return False
        return self.provider != "twilio" or self.sdk_installed

    def send(self, recipients: List[str], message: str) -> SMSDispatchResponse:
        """
        Send ``message`` to every recipient (blocking)

        Each recipient is attempted once; a failure for one does not stop
        the others.

        Args:
            recipients: Phone numbers in E.164 form (``+91XXXXXXXXXX``)
            message: Message text

        Returns:
            SMSDispatchResponse with per-recipient results

        Raises:
            ValidationError: If recipients or message are missing
        """
        if not recipients:
            raise ValidationError("Recipients array is required")
        if not message or not isinstance(message, str):
            raise ValidationError("Message is required")

        if not self.configured:
            logger.warning("SMS provider not fully configured, nothing sent")
            return SMSDispatchResponse(
                success=False,
                configured=False,
                recipients=len(recipients),
                message="SMS service not configured. Please set up Twilio credentials.",
            )

        delivery_results: List[DeliveryResult] = []
        errors = []

        for number in recipients:
            try:
                if self.provider == "twilio":
                    sid, status = self._send_twilio(number, message)
                else:
                    sid, status = self._send_http(number, message)

                delivery_results.append(
                    DeliveryResult(to=number, success=True, status=status, sid=sid)
                )
                logger.info(f"SMS sent to {number}: {sid}")

            except Exception as e:
                code = getattr(e, "code", None)
                logger.error(f"Failed to send SMS to {number}: {e}")
                errors.append({"to": number, "error": str(e), "code": code})
                delivery_results.append(
                    DeliveryResult(to=number, success=False, status="failed", error=str(e))
                )

        success_count = len(delivery_results) - len(errors)
        all_success = not errors
        partial_success = success_count > 0 and bool(errors)

        if all_success:
            summary = f"SMS sent successfully to {success_count} recipient(s)"
        elif partial_success:
            summary = f"SMS sent to {success_count} recipient(s), failed for {len(errors)}"
        else:
            summary = f"Failed to send SMS to all {len(recipients)} recipient(s)"

        return SMSDispatchResponse(
            success=all_success,
            partial_success=partial_success,
            configured=True,
            recipients=len(recipients),
            success_count=success_count,
            failure_count=len(errors),
            message=summary,
            delivery_results=delivery_results,
            errors=errors,
        )

    async def send_async(self, recipients: List[str], message: str) -> SMSDispatchResponse:
        """
        Send SMS asynchronously (non-blocking)

        Args:
            recipients: List of recipient phone numbers
            message: Message text

        Returns:
            SMSDispatchResponse
        """
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            self.executor,
            self.send,
            recipients,
            message
        )

    def _send_twilio(self, to_number: str, message: str):
        """Send SMS via Twilio; returns (sid, status)"""
        result = self.client.messages.create(
            body=message,
            from_=self.config.from_number,
            to=to_number
        )

        logger.debug(f"Twilio accepted {to_number}: {result.sid} ({result.status})")
        return result.sid, result.status

    def _send_http(self, to_number: str, message: str):
        """Send SMS via HTTP API gateway; returns (sid, status)"""
        payload = {
            "to": to_number,
            "from": self.config.from_number,
            "message": message
        }

        headers = {
            "Authorization": f"Bearer {self.config.api_key}",
        }

        response = requests.post(
            self.config.api_url,
            json=payload,
            headers=headers,
            timeout=self.config.timeout
        )

        if response.status_code >= 400:
            raise requests.HTTPError(
                f"Gateway answered {response.status_code} for {to_number}", response=response
            )

        body = response.json() if response.content else {}
        return body.get("sid") or body.get("id"), body.get("status", "sent")

    def status(self) -> SMSProviderStatus:
        """Describe provider readiness without exposing credentials"""
        enabled = bool(self.config.enabled)
        configured = self.configured

        if self.provider == "twilio":
            has_account, has_token = self.config.account_sid, self.config.auth_token
        else:
            has_account, has_token = self.config.api_url, self.config.api_key

        if configured:
            status = "Ready"
        elif enabled:
            status = "Incomplete Configuration"
        else:
            status = "Disabled (Using Notification Log)"

        return SMSProviderStatus(
            enabled=enabled,
            configured=configured,
            account_sid="Set" if has_account else "Missing",
            auth_token="Set" if has_token else "Missing",
            phone_number="Set" if self.config.from_number else "Missing",
            sdk_installed=self.sdk_installed,
            status=status,
        )

    def test_connection(self, test_number: Optional[str] = None) -> bool:
        """
        Check that the provider accepts our credentials.

        Twilio: fetch the account. HTTP gateway: the API URL answers below
        500. With ``test_number`` a test message is sent as well.
        """
        if not self.configured:
            return False

        try:
            if self.provider == "twilio":
                account = self.client.api.accounts(self.config.account_sid).fetch()
                logger.info(f"Twilio account reachable: {account.friendly_name}")
                reachable = True
            else:
                response = requests.head(self.config.api_url, timeout=self.config.timeout)
                logger.info(f"SMS gateway {self.config.api_url} answered {response.status_code}")
                reachable = response.status_code < 500

            if reachable and test_number:
                send = self._send_twilio if self.provider == "twilio" else self._send_http
                send(test_number, "Cloudburst monitor SMS test message")
                logger.info(f"Test SMS sent to {test_number}")
            return reachable

        except Exception as e:
            logger.error(f"SMS provider check failed: {e}", exc_info=True)
            return False

    def shutdown(self):
        """Wait for queued sends, then release the worker threads"""
        self.executor.shutdown(wait=True)
        logger.info(f"SMS client ({self.provider}) stopped")
