import argparse
import asyncio
import logging
import signal
import socket

# Third-party imports
import uvloop

# Local imports
from krpc import config
from krpc.endpoint import KRPCEndpoint
from krpc.protocol import Error, Query

log = logging.getLogger(__name__)


class LoggingEndpoint(KRPCEndpoint):
    """
    Logs every query it receives and answers with the default behaviour.
    """
    async def handler(self, package, addr):
        log.info(f"Query from {addr} sender {package.sender}: {package.payload.fields}")
        raise NotImplementedError


def parse_addr(value):
    host, _, port = value.rpartition(":")
    if not host or not port.isdigit():
        raise argparse.ArgumentTypeError(f"expected host:port, got {value!r}")
    return host, int(port)


async def ping_nodes(endpoint, nodes):
    for host, port in nodes:
        try:
            ip = socket.gethostbyname(host)
        except socket.gaierror:
            log.warning(f"Cannot resolve {host}")
            continue

        reply = await endpoint.ping((ip, port))
        if reply is None:
            log.info(f"No reply from {host}:{port}")
        elif isinstance(reply.payload, Error):
            log.info(f"{host}:{port} answered error {reply.payload.code}: {reply.payload.message}")
        else:
            log.info(f"{host}:{port} is node {reply.sender}")


async def main(args):
    log.info("Starting KRPC node...")
    loop = asyncio.get_running_loop()

    endpoint = LoggingEndpoint(loop=loop)
    await endpoint.run(port=args.port)
    log.info(f"Listening on port {endpoint.transport.get_extra_info('sockname')[1]}")

    nodes = list(args.ping)
    if args.bootstrap:
        nodes.extend(config.BOOTSTRAP_NODES)
    if nodes:
        await ping_nodes(endpoint, nodes)

    stop = asyncio.Future()
    loop.add_signal_handler(signal.SIGINT, stop.set_result, None)
    await stop

    log.info("Shutting down...")
    endpoint.stop()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="A minimal BitTorrent DHT node speaking KRPC.")
    parser.add_argument("--port", type=int, default=config.DEFAULT_PORT, help="DHT listening port.")
    parser.add_argument("--ping", type=parse_addr, action="append", default=[], help="Ping a node (host:port) on start.")
    parser.add_argument("--bootstrap", action="store_true", help="Ping the well-known bootstrap nodes on start.")
    parser.add_argument("--debug", action="store_true", help="Log dropped datagrams and other debug output.")
    args = parser.parse_args()

    # Configure basic logging
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    uvloop.install()
    try:
        asyncio.run(main(args))
    except KeyboardInterrupt:
        log.info("Node stopped by user.")
