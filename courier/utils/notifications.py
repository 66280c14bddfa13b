import asyncio
import logging
from typing import Dict, List, Optional

from pyfcm import FCMNotification

from courier.config import FCM_PROJECT_ID, FCM_SERVICE_ACCOUNT_FILE


logger = logging.getLogger(__name__)


class NoopPush:

    enabled = False

    async def send_fcm(self, tokens: List[str], title: str, body: str, data: Optional[Dict[str, str]] = None) -> int:
        return 0


class FcmPush:

    enabled = True

    def __init__(self, service_account_file: str, project_id: str) -> None:
        self._client = FCMNotification(service_account_file=service_account_file, project_id=project_id)

    async def send_fcm(self, tokens: List[str], title: str, body: str, data: Optional[Dict[str, str]] = None) -> int:
        """Push to every token, returns how many deliveries the FCM API accepted."""
        sent = 0
        for token in tokens:
            try:
                # pyfcm is blocking
                await asyncio.to_thread(
                    self._client.notify,
                    fcm_token=token,
                    notification_title=title,
                    notification_body=body,
                    data_payload=data or {},
                )
                sent += 1
            except Exception as exc:
                logger.warning("FCM push to a device failed: %s", exc)
        return sent


_push = None


def get_push():
    global _push
    if _push is None:
        if FCM_SERVICE_ACCOUNT_FILE and FCM_PROJECT_ID:
            _push = FcmPush(FCM_SERVICE_ACCOUNT_FILE, FCM_PROJECT_ID)
        else:
            _push = NoopPush()
    return _push
