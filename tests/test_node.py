# tests/test_node.py
"""
Tests du client des nœuds Munin et du worker de mise à jour,
contre un faux nœud TCP local.
"""

import socket
import socketserver
import threading

import pytest

from munin_master.workers.node import NodeClient, NodeError, parse_config_lines
from munin_master.workers.update_worker import UpdateWorker


NODE_SERVICES = {
    "load": [
        "graph_title Load average",
        "graph_args --base 1000 -l 0",
        "load.label load",
        "load.warning 10",
    ],
    "if_eth0": [
        "# plugin comment",
        "graph_order down up",
        "down.label received",
        "down.type DERIVE",
        "up.label bps",
        "up.negative down",
    ],
}


class FakeNodeHandler(socketserver.StreamRequestHandler):
    banner = "# munin node at fake.example.com"

    def handle(self):
        self.wfile.write(f"{self.banner}\n".encode())
        for raw in self.rfile:
            command, _, argument = raw.decode().strip().partition(" ")
            self.server.commands.append((command, argument))
            if command == "list":
                self.wfile.write((" ".join(NODE_SERVICES) + "\n").encode())
            elif command == "config":
                lines = NODE_SERVICES.get(argument, ["# Unknown service"])
                self.wfile.write(("\n".join(lines) + "\n.\n").encode())
            elif command == "quit":
                return


class SilentNodeHandler(FakeNodeHandler):
    banner = "hello"


@pytest.fixture
def fake_node():
    def _start(handler=FakeNodeHandler):
        server = socketserver.ThreadingTCPServer(("127.0.0.1", 0), handler)
        server.daemon_threads = True
        server.commands = []
        thread = threading.Thread(target=server.serve_forever, daemon=True)
        thread.start()
        servers.append(server)
        return server

    servers = []
    yield _start
    for server in servers:
        server.shutdown()
        server.server_close()


def _free_port():
    with socket.socket() as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


def test_parse_config_lines_splits_by_depth():
    config = parse_config_lines(NODE_SERVICES["if_eth0"] + ["graph.deep.path x"])

    assert config["global"] == [(["graph_order"], "down up"), (["graph", "deep", "path"], "x")]
    assert config["data_source"] == {
        "down": {"label": "received", "type": "DERIVE"},
        "up": {"label": "bps", "negative": "down"},
    }


def test_parse_config_lines_accepts_attribute_without_value():
    assert parse_config_lines(["graph_info"])["global"] == [(["graph_info"], "")]


def test_client_lists_services_and_fetches_config(fake_node):
    server = fake_node()
    host, port = server.server_address

    with NodeClient(host, port, timeout=5, node_name="fake.example.com") as client:
        assert client.banner.startswith("# munin node at")
        assert client.list_services() == ["load", "if_eth0"]
        assert client.fetch_config("load") == NODE_SERVICES["load"]
        assert client.fetch_config("nope") == ["# Unknown service"]

    assert ("list", "fake.example.com") in server.commands


def test_client_rejects_unexpected_banner(fake_node):
    server = fake_node(SilentNodeHandler)
    host, port = server.server_address

    with pytest.raises(NodeError):
        NodeClient(host, port, timeout=5).connect()


def test_update_worker_collects_all_services(fake_node):
    server = fake_node()
    host, port = server.server_address
    worker = UpdateWorker({"host_name": "fake.example.com", "group": "example.com",
                           "address": host, "port": port, "update": True}, timeout=5)

    worker_id, time_used, service_configs = worker.run()

    assert worker_id == "fake.example.com"
    assert time_used >= 0
    assert sorted(service_configs) == ["if_eth0", "load"]
    assert service_configs["load"]["data_source"] == {"load": {"label": "load", "warning": "10"}}
    assert service_configs["load"]["global"][0] == (["graph_title"], "Load average")


def test_update_worker_reports_unreachable_node_as_failure():
    worker = UpdateWorker({"host_name": "gone", "group": "gone", "address": "127.0.0.1",
                           "port": _free_port(), "update": True}, timeout=2)

    worker_id, time_used, service_configs = worker.run()

    assert worker_id == "gone"
    assert service_configs is None
