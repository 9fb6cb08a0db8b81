"""Snapshot collection from the OS socket table.

Runs ``ss -tunap`` (or a configured equivalent with the same column
layout) and turns its rows into a :class:`Snapshot`:

    Netid State  Recv-Q Send-Q Local Address:Port  Peer Address:Port Process
    tcp   LISTEN 0      128    0.0.0.0:22          0.0.0.0:*         users:(("sshd",pid=1,fd=3))
    tcp   ESTAB  0      0      10.0.0.5:22         10.0.0.9:51812    users:(("sshd",pid=7,fd=4))

Rows in state LISTEN become listening ports. Every other row except
unconnected UDP sockets is an active connection.
"""

import logging
import subprocess
from collections.abc import Callable, Sequence

from homesoc.errors import CollectionError
from homesoc.network.models import Connection, ListeningPort, Snapshot, port_of

logger = logging.getLogger(__name__)

LISTEN_STATE = "LISTEN"
UNCONNECTED_STATE = "UNCONN"
HEADER_PREFIXES = ("Netid", "State")

# Runs a command and returns its stdout; raises CollectionError on failure
CommandRunner = Callable[[Sequence[str], float], str]


def run_command(command: Sequence[str], timeout: float) -> str:
    """Execute the socket listing command.

    Raises:
        CollectionError: If the command is missing, times out or exits non-zero
    """
    try:
        result = subprocess.run(
            list(command),
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except FileNotFoundError as e:
        raise CollectionError(f"Command not found: {command[0]}") from e
    except subprocess.TimeoutExpired as e:
        raise CollectionError(f"Command timed out after {timeout}s: {' '.join(command)}") from e
    except OSError as e:
        raise CollectionError(f"Failed to run {' '.join(command)}: {e}") from e

    if result.returncode != 0:
        stderr = result.stderr.strip()[:200]
        raise CollectionError(f"{' '.join(command)} exited with {result.returncode}: {stderr}")

    return result.stdout


def _parse_queue(value: str) -> int | None:
    return int(value) if value.isdigit() else None


def parse_socket_table(output: str) -> tuple[list[Connection], list[ListeningPort]]:
    """Parse ``ss`` output into connections and listening ports.

    Lines that do not match the column layout are skipped. An output with
    only a header is valid and yields two empty lists.

    Raises:
        CollectionError: If the output has no recognizable header
    """
    lines = [line for line in output.splitlines() if line.strip()]
    if not lines or not lines[0].lstrip().startswith(HEADER_PREFIXES):
        raise CollectionError("Unrecognized socket table output (missing header)")

    connections: list[Connection] = []
    ports: list[ListeningPort] = []
    skipped = 0

    for line in lines[1:]:
        parts = line.split()
        if len(parts) < 6:
            skipped += 1
            continue

        protocol, state, recv_q, send_q, local, peer = parts[:6]
        recv = _parse_queue(recv_q)
        send = _parse_queue(send_q)
        if recv is None or send is None:
            skipped += 1
            continue

        if state == LISTEN_STATE:
            ports.append(ListeningPort(protocol=protocol, port=port_of(local), address=local))
            continue
        if state == UNCONNECTED_STATE:
            continue

        connections.append(
            Connection(
                protocol=protocol,
                state=state,
                local_address=local,
                peer_address=peer,
                process_label=" ".join(parts[6:]) or "unknown",
                recv_q=recv,
                send_q=send,
            )
        )

    if skipped:
        logger.debug(f"Skipped {skipped} unparseable socket rows")

    return connections, ports


class SnapshotCollector:
    """Collects a normalized snapshot of local network state."""

    def __init__(
        self,
        command: Sequence[str] = ("ss", "-tunap"),
        timeout: float = 10.0,
        runner: CommandRunner = run_command,
    ):
        """Initialize collector.

        Args:
            command: Socket listing command with ss column layout
            timeout: Command timeout in seconds
            runner: Command executor (injectable for tests)
        """
        self.command = list(command)
        self.timeout = timeout
        self._runner = runner

    def collect(self) -> Snapshot:
        """Query the OS and build a snapshot.

        Returns:
            Snapshot with stats derived from the parsed rows

        Raises:
            CollectionError: If the query fails or its output is unparseable
        """
        output = self._runner(self.command, self.timeout)
        connections, ports = parse_socket_table(output)
        snapshot = Snapshot.build(connections, ports)

        stats = snapshot.stats
        logger.info(
            f"Connections: {stats.total_connections} "
            f"({stats.established_connections} established), "
            f"listening ports: {stats.listening_ports}"
        )
        return snapshot
