from PySide6 import QtAsyncio

# Use absolute import so it works when frozen as a script entrypoint.
from kart_remote.app import create_application, create_control_core, create_main_window


def main() -> int:
    create_application()
    core = create_control_core()
    window = create_main_window(core)
    window.show()
    # The Qt event loop doubles as the asyncio loop for BLE operations.
    QtAsyncio.run(handle_sigint=True)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
