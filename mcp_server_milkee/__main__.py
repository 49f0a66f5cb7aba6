from mcp_server_milkee.server import run

run()
