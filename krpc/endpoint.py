import asyncio
import collections
import logging
import reprlib
import time

from . import config
from . import constants
from . import utils
from .compact import CompactNode
from .errors import DecodeError
from .protocol import Error, Package, Query, Response, decode_message, encode_message


class KRPCEndpoint(asyncio.DatagramProtocol):
    """
    Sends and receives KRPC packages over UDP.

    Responses and errors matching an outstanding query resolve that query.
    Incoming queries are passed to ``handler``; the default one answers
    ping and rejects every other method.
    """
    def __init__(self, loop=None, node_id=None, address=None, handler=None,
                 query_timeout=config.QUERY_TIMEOUT):
        self.node_id = utils.random_node_id() if node_id is None else node_id
        self.address = utils.Address(*address) if address else None
        self.transport = None
        self.loop = loop or asyncio.get_event_loop()
        if handler:
            self.handler = handler
        self.log = logging.getLogger("KRPC")
        self.query_timeout = query_timeout
        self._pending_queries = {}
        self.background_tasks = set()
        self.rate_limiter = {}

        self.__running = False
        self.cleanup_task = None

    @property
    def sender(self):
        if self.address is None:
            return None
        return CompactNode(self.node_id, self.address)

    def connection_made(self, transport):
        self.transport = transport
        if self.address is None:
            sockname = transport.get_extra_info('sockname')
            if sockname:
                self.address = utils.Address(sockname[0], sockname[1])

    def connection_lost(self, exc):
        self.__running = False
        for future in self._pending_queries.values():
            if not future.done():
                future.cancel()
        super().connection_lost(exc)

    def datagram_received(self, data, addr):
        now = time.monotonic()
        ip = addr[0]

        if ip not in self.rate_limiter:
            self.rate_limiter[ip] = collections.deque()

        timestamps = self.rate_limiter[ip]

        # Remove timestamps older than the window
        while timestamps and timestamps[0] < now - config.RATE_LIMIT_WINDOW:
            timestamps.popleft()

        if len(timestamps) >= config.RATE_LIMIT_REQUESTS:
            # Drop packet
            return

        timestamps.append(now)

        try:
            package = decode_message(data)
        except DecodeError as e:
            self.log.debug(f"Dropping datagram from {addr} ({type(e).__name__}): {e}")
            return
        except Exception as e:
            self.log.debug(f"Dropping undecodable datagram from {addr}: {type(e).__name__}")
            return

        try:
            self.handle_package(package, addr)
        except Exception:
            self.log.exception(f"Error handling package from {addr}")

    def handle_package(self, package, addr):
        payload = package.payload
        if isinstance(payload, Query):
            task = asyncio.ensure_future(self.handle_query(package, addr), loop=self.loop)
            self.background_tasks.add(task)
            task.add_done_callback(self.background_tasks.discard)
            return task

        future = self._pending_queries.pop(package.transaction_id, None)
        if future is not None and not future.done():
            future.set_result(package)
            return

        if isinstance(payload, Error):
            self.log.debug(f"Unsolicited error {payload.code} from {addr}: {payload.message}")
        elif isinstance(payload, Response):
            self.log.debug(f"Unsolicited response from {addr}, tid {package.transaction_id!r}")

    async def handle_query(self, package, addr):
        method = package.payload.fields.get(constants.KRPC_METHOD)
        try:
            reply = await self.handler(package, addr)
        except NotImplementedError:
            if method == constants.KRPC_PING:
                reply = Response()
            else:
                reply = Error(constants.KRPC_METHOD_UNKNOWN, "Method Unknown")
        except Exception:
            self.log.exception(f"Error in handler for {reprlib.repr(method)} query from {addr}")
            reply = Error(constants.KRPC_SERVER_ERROR, "Server Error")

        if reply is not None:
            self.respond(package, reply, addr)

    async def handler(self, package, addr):
        """
        Default handler for incoming queries. Returns the payload to answer
        with, or None to stay silent.
        """
        raise NotImplementedError

    def respond(self, request, payload, addr):
        sender = None if isinstance(payload, Error) else self.sender
        self.send_package(Package(request.transaction_id, payload, sender), addr)

    def send_package(self, package, addr):
        self.transport.sendto(encode_message(package), addr)

    def _new_transaction_id(self):
        tid = utils.random_transaction_id(config.TRANSACTION_ID_SIZE)
        while tid in self._pending_queries:
            tid = utils.random_transaction_id(config.TRANSACTION_ID_SIZE)
        return tid

    async def query(self, method, addr, args=None, timeout=None):
        """
        Sends a query to a specific address and waits for the response or
        error package. Returns None on timeout.
        """
        fields = dict(args or {})
        fields[constants.KRPC_METHOD] = method

        tid = self._new_transaction_id()
        future = self.loop.create_future()
        self._pending_queries[tid] = future

        try:
            self.send_package(Package(tid, Query(fields), self.sender), addr)
            return await asyncio.wait_for(future, timeout or self.query_timeout)
        except asyncio.TimeoutError:
            return None
        finally:
            self._pending_queries.pop(tid, None)

    async def ping(self, addr, timeout=None):
        return await self.query(constants.KRPC_PING, addr, timeout=timeout)

    def prune_rate_limiter(self, now=None):
        """Drops IPs with no datagram within the cleanup interval. Returns how many."""
        if now is None:
            now = time.monotonic()
        cutoff = now - config.RATE_LIMIT_CLEANUP_INTERVAL
        stale_ips = [
            ip for ip, timestamps in self.rate_limiter.items()
            if not timestamps or timestamps[-1] < cutoff
        ]
        for ip in stale_ips:
            del self.rate_limiter[ip]
        return len(stale_ips)

    async def _cleanup_rate_limiter(self):
        """
        Periodically cleans up the rate_limiter dictionary to remove stale entries.
        """
        while self.__running:
            try:
                await asyncio.sleep(config.RATE_LIMIT_CLEANUP_INTERVAL)

                removed = self.prune_rate_limiter()
                if removed:
                    self.log.info(f"Rate limiter cleanup: removed {removed} stale entries.")

            except asyncio.CancelledError:
                self.log.info("Rate limiter cleanup task cancelled.")
                break
            except Exception:
                self.log.exception("Error in rate limiter cleanup task.")

    async def run(self, port=config.DEFAULT_PORT, host='0.0.0.0'):
        await self.loop.create_datagram_endpoint(
                lambda: self, local_addr=(host, port)
        )
        self.__running = True

        cleanup_task = asyncio.ensure_future(self._cleanup_rate_limiter(), loop=self.loop)
        self.background_tasks.add(cleanup_task)
        cleanup_task.add_done_callback(self.background_tasks.discard)
        self.cleanup_task = cleanup_task

    def stop(self):
        self.__running = False
        if self.cleanup_task:
            self.cleanup_task.cancel()
        if self.transport:
            self.transport.close()
