"""
邮件通道（SMTP）。

约定：
- 发送结果是**显式的** `EmailDelivery`（sent/skipped/failed），调用方可以断言
- 没配置 host/to：skipped + 一行日志，不是错误
- SMTP 出错：记录日志并返回 failed，永不向上抛
- smtplib 是阻塞 I/O，放到 worker thread 里跑，避免卡住事件循环
"""

from __future__ import annotations

import logging
import smtplib
import ssl
from collections.abc import Callable
from email.message import EmailMessage
from typing import Literal

import anyio
from pydantic import BaseModel

from review_action.config import EmailConfig
from review_action.errors import EmailTransportError

logger = logging.getLogger(__name__)

SMTP_TIMEOUT_SECONDS = 30.0

EmailTransport = Callable[[EmailConfig, EmailMessage], None]


class EmailDelivery(BaseModel):
    status: Literal["sent", "skipped", "failed"]
    detail: str = ""


def build_message(subject: str, html_body: str, config: EmailConfig) -> EmailMessage:
    message = EmailMessage()
    message["Subject"] = subject
    message["From"] = config.from_addr or config.user
    message["To"] = config.to
    if config.bcc:
        message["Bcc"] = config.bcc
    message.set_content("This message contains an HTML code review.")
    message.add_alternative(html_body, subtype="html")
    return message


def smtp_transport(config: EmailConfig, message: EmailMessage) -> None:
    """
    默认 transport：

    - secure=true：隐式 TLS（通常 465）
    - 否则：明文连接，服务端支持时升级 STARTTLS（通常 587）
    """
    context = ssl.create_default_context()
    try:
        if config.secure:
            smtp: smtplib.SMTP = smtplib.SMTP_SSL(
                config.host, config.port, timeout=SMTP_TIMEOUT_SECONDS, context=context
            )
        else:
            smtp = smtplib.SMTP(config.host, config.port, timeout=SMTP_TIMEOUT_SECONDS)
        with smtp:
            if not config.secure:
                smtp.ehlo()
                if smtp.has_extn("starttls"):
                    smtp.starttls(context=context)
                    smtp.ehlo()
            if config.user:
                smtp.login(config.user, config.password)
            smtp.send_message(message)
    except (smtplib.SMTPException, OSError, ValueError) as exc:
        # ValueError 包括 UnicodeEncodeError：smtplib 按 ASCII 编码账号密码
        raise EmailTransportError(f"SMTP delivery via {config.host}:{config.port} failed: {exc}") from exc


async def send_email(
    subject: str,
    html_body: str,
    config: EmailConfig,
    transport: EmailTransport = smtp_transport,
) -> EmailDelivery:
    if not config.is_configured:
        logger.info("No email credentials configured, skipping email.")
        return EmailDelivery(status="skipped", detail="email host or recipient not configured")

    try:
        message = build_message(subject=subject, html_body=html_body, config=config)
        await anyio.to_thread.run_sync(transport, config, message)
    except ValueError as exc:
        # 头部非法（例如收件人里有换行）
        logger.error(f"Invalid email message: {exc}")
        return EmailDelivery(status="failed", detail=str(exc))
    except EmailTransportError as exc:
        logger.error(f"Error sending email: {exc}")
        return EmailDelivery(status="failed", detail=str(exc))

    logger.info(f"Email sent to {config.to}: {subject}")
    return EmailDelivery(status="sent")
