"""Common constants used across all armcal modules."""

from pathlib import Path

# Robot-control service defaults
DEFAULT_HOST = "localhost"
DEFAULT_PORT = 80
DEFAULT_ROBOT_ID = 0
DEFAULT_SAVE_DIR = Path("/tmp")

# Polling and transport
DEFAULT_POLL_INTERVAL = 2.0  # seconds
DEFAULT_MAX_POLLS = 600
DEFAULT_POLL_TIMEOUT = 1800.0  # 30 minutes
DEFAULT_REQUEST_TIMEOUT = 30.0
DEFAULT_RETRIES = 0

# Endpoints
INIT_ENDPOINT = "/move/init"
TORQUE_ENDPOINT = "/torque/toggle"
CALIBRATE_ENDPOINT = "/calibrate"
JOINTS_READ_ENDPOINT = "/joints/read"
MOVE_ABSOLUTE_ENDPOINT = "/move/absolute"

# Response fields
CALIBRATION_STATUS = "calibration_status"
CURRENT_STEP = "current_step"
TOTAL_STEPS = "total_nb_steps"
MESSAGE = "message"
STATUS = "status"
JOINTS = "joints"

# Scalars that mark upstream sensor or serialization failure
POISONED_TEXT = ("NaN", "null", "")

# Diagnostic phase labels
PHASE_CALIBRATE_RESPONSE = "calibrate_response"
PHASE_CALIBRATE_POLLING = "calibrate_polling"
PHASE_JOINTS_READ = "joints_read"
DIAGNOSTIC_TIMESTAMP_FORMAT = "%Y%m%dT%H%M%SZ"

# Fixed request bodies
JOINTS_READ_BODY = {"unit": "rad", "source": "robot"}
# After /move/init, (0, 0, 0) is the base pose: lift Z by 2 cm with the gripper open
VERIFICATION_MOVE = {"x": 0, "y": 0, "z": 2, "open": 1, "max_trials": 10}

# Environment variables read by the CLI
ENV_HOST = "HOST"
ENV_PORT = "PORT"
ENV_ROBOT_ID = "RID"
ENV_SAVE_DIR = "SAVE_DIR"
ENV_POLL_INTERVAL = "POLL_INTERVAL"

# Process exit codes
EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_CONFIG_ERROR = 2
EXIT_INTERRUPTED = 130  # 128 + SIGINT
