import asyncio
import logging
from typing import Dict, Optional

from .models import ResolvedKernel


class RemoteKernelRegistry:
    """
    Tracks which remote kernel each buffer is connected to.
    """

    def __init__(self):
        self.kernels: Dict[int, ResolvedKernel] = {}
        self._logger = logging.getLogger("jupygate.kernel_registry")

    async def register(self, bnum: int, kernel: ResolvedKernel):
        """
        Bind ``kernel`` to buffer ``bnum``, closing whatever it replaced.

        Args:
            bnum: Buffer number
            kernel: The kernel returned by the picker
        """
        previous = self.kernels.get(bnum)
        self.kernels[bnum] = kernel
        if previous is not None and previous.session is not kernel.session:
            self._logger.info(f"Buffer {bnum} switched kernels; closing session {previous.session.id[:8]}")
            await previous.session.close()
        self._logger.info(
            f"Buffer {bnum} bound to {kernel.kernel_spec.name} on {kernel.gateway_name} (session {kernel.session.id[:8]})"
        )

    def get(self, bnum: int) -> Optional[ResolvedKernel]:
        return self.kernels.get(bnum)

    async def disconnect(self, bnum: int, shutdown: bool = False) -> bool:
        """
        Close the kernel bound to ``bnum``.

        Args:
            bnum: Buffer number
            shutdown: Also delete the session on the gateway

        Returns:
            bool: False if the buffer had no kernel
        """
        kernel = self.kernels.pop(bnum, None)
        if kernel is None:
            return False
        if shutdown:
            await kernel.session.shutdown()
        else:
            await kernel.session.close()
        self._logger.info(f"Disconnected buffer {bnum} from session {kernel.session.id[:8]}")
        return True

    async def close_all(self):
        """Close every session concurrently. Remote sessions are left running."""
        if not self.kernels:
            self._logger.info("No remote kernels to close")
            return
        kernels = list(self.kernels.values())
        self.kernels.clear()
        results = await asyncio.gather(*(k.session.close() for k in kernels), return_exceptions=True)
        for kernel, result in zip(kernels, results):
            if isinstance(result, Exception):
                self._logger.error(f"Error closing session {kernel.session.id[:8]}: {result}")
        self._logger.info(f"Closed {len(kernels)} remote kernels")

    def list_kernels(self) -> Dict[int, Dict]:
        result = {}
        for bnum, kernel in self.kernels.items():
            session = kernel.session
            result[bnum] = {
                "gateway": kernel.gateway_name,
                "kernel_name": kernel.kernel_spec.name,
                "display_name": kernel.kernel_spec.display_name,
                "language": kernel.language,
                "session_id": session.id,
                "short_id": session.id[:8],
                "channel_open": session.channel is not None and not session.channel.closed,
            }
        return result
