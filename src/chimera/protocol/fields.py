"""Protocol constants.

Keep these in one place to avoid stringly-typed message handling. The
names are stable across versions; peers on the planning side rely on them.
"""

# Instruction envelope
MODULE = "module"
PAYLOAD = "payload"
CODE = "code"

# Response envelope
STATUS = "status"
MESSAGE = "message"
DATA = "data"
CATEGORY = "category"

SUCCESS = "success"
ERROR = "error"

# Model handler
LAYERS = "layers"
NETWORK = "network"
PARAMS = "params"
WEIGHTS = "weights"
ACCURACY = "accuracy"
LOSS = "loss"
EPOCHS = "epochs"
LEARNING_RATE = "learning_rate"
LOSS_FUNCTION = "loss_function"
DEVICE = "device"

# Layer and gate specifications
TYPE = "type"
KIND = "kind"
INPUT_DIM = "input_dim"
OUTPUT_DIM = "output_dim"
ACTIVATION = "activation"
QUBITS = "qubits"

# Accelerator handler
ACTION = "action"
INPUT = "input"
TARGET = "target"
OUTPUT = "output"

# Quantum handler
N_QUBITS = "n_qubits"
GATES = "gates"
N_SHOTS = "n_shots"
RESULTS = "results"
CIRCUIT = "circuit"
BACKEND = "backend"
SEED = "seed"
