# Cortex — Shared-Weight Recurrent Actor-Critic Engine
# Copyright (c) 2026 SolisHQ (github.com/solishq). MIT License.

from .network import RecurrentPolicyNetwork, ForwardResult, NetworkSizes, average_weights
from .brain import BrainState, Experience
from .decoder import ACTION_NAMES, select_action, mask_actions, action_name
from .trainer import PolicyGradientTrainer, TrainingResult, train_batch, compute_gradient
from .genetics import crossover_networks, mutate
from .shared import SharedNetwork
from .scheduler import DecisionScheduler, LearningScheduler, Scheduler
from .config import EngineConfig

__author__ = "SolisHQ"
__version__ = "1.0.0"
