# Minimal transformer inference engine built on numpy
# Tokenizer -> forward pass -> temperature sampling -> generation loop

from .activations import ReLU, Softmax
from .layers import Linear, LayerNorm, Embedding, PositionalEncoding
from .attention import MultiHeadAttention, CausalMeanAttention
from .transformer import TransformerBlock, ForwardEngine, VectorizedEngine, ReferenceEngine
from .config import CONFIG, ModelConfig
from .errors import EngineError, InitializationError, UninitializedModel, InvalidArgument, EmptyInput
from .tokenizer import Tokenizer
from .params import ParameterSet, initialize_parameters
from .sampling import Sampler, softmax, sample
from .generation import GenerationLoop, GenerationResult, StopReason
from .engine import InferenceEngine, Completion, initialize
