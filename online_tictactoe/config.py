"""Shared constants for Online Tic-Tac-Toe. All game-wide configuration lives here."""

# --- Board ---
BOARD_SIZE = 3
NUM_CELLS = BOARD_SIZE * BOARD_SIZE

# --- Networking ---
GREETING = "Hello!"          # handshake string, Initiator -> Acceptor
MIN_PORT = 5000              # lowest port accepted on the command line
CONNECT_RETRY_S = 1.0        # accept/connect polling interval during rendezvous
PENDING_CHECK_S = 0.1        # how long to look for queued connections after connecting
LISTEN_BACKLOG = 2           # room for the peer plus a possible self-connection

# --- Display ---
CELL_SIZE = 100  # pixels per cell
STATUS_BAR_HEIGHT = 40
WINDOW_WIDTH = BOARD_SIZE * CELL_SIZE
WINDOW_HEIGHT = BOARD_SIZE * CELL_SIZE + STATUS_BAR_HEIGHT
FPS = 30
GRID_LINE_WIDTH = 4
MARK_LINE_WIDTH = 8
MARK_PADDING = 20  # pixels between a mark and its cell border

# --- Colors ---
COLOR_BG = (245, 240, 230)
COLOR_GRID = (60, 60, 60)
COLOR_MARK_FIRST = (60, 120, 220)    # "O"
COLOR_MARK_SECOND = (220, 80, 60)    # "X"
COLOR_WIN_LINE = (40, 160, 70)
COLOR_STATUS_BG = (30, 30, 40)
COLOR_STATUS_TEXT = (220, 220, 220)
COLOR_OVERLAY = (0, 0, 0, 160)
