"""Unit definition and init script templates."""

SYSTEMD_SERVICE_TEMPLATE = """[Unit]
Description={service_name} background service
After=network.target network-online.target
Wants=network-online.target

[Service]
Type=simple
ExecStart={exec_start}
Restart=on-failure
RestartSec={restart_sec}
StandardOutput=journal
StandardError=journal

[Install]
WantedBy=multi-user.target
"""

SYSV_INIT_SCRIPT_TEMPLATE = """#!/bin/sh
### BEGIN INIT INFO
# Provides:          {service_name}
# Required-Start:    $local_fs $network $remote_fs
# Required-Stop:     $local_fs $network $remote_fs
# Default-Start:     2 3 4 5
# Default-Stop:      0 1 6
# Short-Description: {service_name} background service
### END INIT INFO

PROG="{service_name}"
EXEC="{exec_path}"
PIDFILE="{pid_file}"

[ -x "$EXEC" ] || exit 5

is_running() {{
    [ -f "$PIDFILE" ] && kill -0 "$(cat "$PIDFILE")" 2>/dev/null
}}

start() {{
    if is_running; then
        echo "$PROG is already running"
        return 1
    fi
    nohup "$EXEC" >/dev/null 2>&1 &
    echo $! > "$PIDFILE"
    echo "$PROG started"
}}

stop() {{
    [ -f "$PIDFILE" ] || {{ echo "$PROG is not running"; return 0; }}
    kill "$(cat "$PIDFILE")" 2>/dev/null
    rm -f "$PIDFILE"
    echo "$PROG stopped"
}}

case "$1" in
    start) start ;;
    stop) stop ;;
    restart) stop; sleep {restart_pause}; start ;;
    status) if is_running; then echo "running"; else echo "stopped"; exit 3; fi ;;
    *) echo "Usage: $0 {{start|stop|restart|status}}"; exit 2 ;;
esac
"""
