"""
Tests for learning configuration and presets.
"""
from cinerl.learning import (
    DEFAULT_LEARNING_CONFIG,
    DEFAULT_REWARD_WEIGHTS,
    LearningConfig,
    LearningPresets,
)


class TestLearningConfig:
    """Test LearningConfig clamping and serialization."""

    def test_defaults(self):
        config = LearningConfig()
        assert config.learning_rate == 0.1
        assert config.discount_factor == 0.95
        assert config.epsilon == 0.15
        assert config.epsilon_decay == 0.999
        assert config.epsilon_min == 0.05
        assert config.explore_window == 30
        assert config.reward_weights == DEFAULT_REWARD_WEIGHTS

    def test_clamps_ranges(self):
        config = LearningConfig(learning_rate=5.0, discount_factor=-1.0, epsilon=2.0, explore_window=0)
        assert config.learning_rate == 1.0
        assert config.discount_factor == 0.0
        assert config.epsilon == 1.0
        assert config.explore_window == 1

    def test_epsilon_min_never_exceeds_epsilon(self):
        config = LearningConfig(epsilon=0.1, epsilon_min=0.4)
        assert config.epsilon_min == 0.1

    def test_partial_reward_weights_merge_with_defaults(self):
        config = LearningConfig(reward_weights={"click": 3.0})
        assert config.reward_weights["click"] == 3.0
        assert config.reward_weights["rating_negative"] == -1.0

    def test_default_weights_not_shared(self):
        config = LearningConfig()
        config.reward_weights["click"] = 9.0
        assert DEFAULT_REWARD_WEIGHTS["click"] == 1.0
        assert DEFAULT_LEARNING_CONFIG.reward_weights["click"] == 1.0

    def test_dict_roundtrip(self):
        original = LearningConfig(learning_rate=0.2, prng_seed=3, reward_weights={"dwell": 0.1})
        restored = LearningConfig.from_dict(original.to_dict())
        assert restored == original


class TestLearningPresets:
    """Test preset configurations."""

    def test_exploit_only_never_explores(self):
        config = LearningPresets.exploit_only()
        assert config.epsilon == 0.0
        assert config.epsilon_min == 0.0

    def test_exploratory_explores_more(self):
        assert LearningPresets.exploratory().epsilon > LearningPresets.default().epsilon

    def test_deterministic_test_seeds_prng(self):
        assert LearningPresets.deterministic_test(7).prng_seed == 7
