"""
Configuration Management Module
Loads and validates screening configuration from config.yaml
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Any, Optional

import yaml

logger = logging.getLogger(__name__)


@dataclass
class MatchingConfig:
    """Match scoring parameters"""
    risk_thresholds: Dict[str, float] = field(default_factory=lambda: {
        'high': 90,
        'medium': 70,
        'low': 50
    })
    corroboration_floor: float = 60
    nationality_boost: float = 10
    dob_boost: float = 20
    name_field_threshold: float = 0.8
    max_score: float = 100


@dataclass
class AggregationConfig:
    """Labels used when building the client match trail"""
    entity_label: str = "Entity"
    role_labels: Dict[str, str] = field(default_factory=lambda: {
        'directors': 'Director',
        'shareholders': 'Shareholder',
        'ubos': 'UBO',
        'signatories': 'Signatory'
    })


@dataclass
class AuditConfig:
    """Audit trail configuration"""
    enabled: bool = True
    log_dir: str = "logs"
    file_name: str = "screening_audit.log"


@dataclass
class LoggingConfig:
    """Logging configuration"""
    level: str = "INFO"
    file: Optional[str] = None
    console: bool = True
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass
class PerformanceConfig:
    """Bulk re-screening configuration"""
    concurrent_screening: bool = True
    max_workers: int = 4


@dataclass
class AlgorithmConfig:
    """Algorithm version information"""
    version: str = "1.0.0"
    name: str = "Edit Distance Name Matcher"


class ConfigurationError(Exception):
    """Raised when configuration is invalid"""
    pass


class ConfigManager:
    """Manages system configuration"""

    _instance: Optional['ConfigManager'] = None

    def __init__(self, config_path: Optional[str] = None):
        """Initialize configuration manager

        Args:
            config_path: Path to config.yaml file
        """
        self.config_path = Path(config_path) if config_path else self._find_config()
        self._raw_config: Dict[str, Any] = {}
        self.matching: MatchingConfig = MatchingConfig()
        self.aggregation: AggregationConfig = AggregationConfig()
        self.audit: AuditConfig = AuditConfig()
        self.logging: LoggingConfig = LoggingConfig()
        self.performance: PerformanceConfig = PerformanceConfig()
        self.algorithm: AlgorithmConfig = AlgorithmConfig()

        if self.config_path and self.config_path.exists():
            self.load()
        else:
            logger.warning(f"Config file not found at {self.config_path}, using defaults")

    def _find_config(self) -> Path:
        """Find config.yaml in common locations"""
        search_paths = [
            Path(__file__).parent / "config.yaml",
            Path.cwd() / "config.yaml",
        ]

        for path in search_paths:
            if path.exists():
                return path

        return search_paths[0]

    def load(self) -> None:
        """Load configuration from YAML file"""
        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                self._raw_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in config file: {e}")
        except FileNotFoundError:
            raise ConfigurationError(f"Config file not found: {self.config_path}")

        if not isinstance(self._raw_config, dict):
            raise ConfigurationError("Config file must contain a mapping at the top level")

        self._parse_matching()
        self._parse_aggregation()
        self._parse_audit()
        self._parse_logging()
        self._parse_performance()
        self._parse_algorithm()
        self._validate()

    def _section(self, name: str) -> Dict[str, Any]:
        """Return a top-level section, treating an empty key as defaults"""
        cfg = self._raw_config.get(name) or {}
        if not isinstance(cfg, dict):
            raise ConfigurationError(f"Config section '{name}' must be a mapping")
        return cfg

    def _parse_matching(self) -> None:
        """Parse matching configuration"""
        cfg = self._section('matching')
        defaults = MatchingConfig()

        thresholds = dict(defaults.risk_thresholds)
        thresholds.update(cfg.get('risk_thresholds') or {})

        self.matching = MatchingConfig(
            risk_thresholds=thresholds,
            corroboration_floor=cfg.get('corroboration_floor', defaults.corroboration_floor),
            nationality_boost=cfg.get('nationality_boost', defaults.nationality_boost),
            dob_boost=cfg.get('dob_boost', defaults.dob_boost),
            name_field_threshold=cfg.get('name_field_threshold', defaults.name_field_threshold),
            max_score=cfg.get('max_score', defaults.max_score)
        )

    def _parse_aggregation(self) -> None:
        """Parse aggregation configuration"""
        cfg = self._section('aggregation')
        defaults = AggregationConfig()

        labels = dict(defaults.role_labels)
        labels.update(cfg.get('role_labels') or {})

        self.aggregation = AggregationConfig(
            entity_label=cfg.get('entity_label', defaults.entity_label),
            role_labels=labels
        )

    def _parse_audit(self) -> None:
        """Parse audit configuration"""
        cfg = self._section('audit')
        self.audit = AuditConfig(
            enabled=cfg.get('enabled', True),
            log_dir=cfg.get('log_dir', 'logs'),
            file_name=cfg.get('file_name', 'screening_audit.log')
        )

    def _parse_logging(self) -> None:
        """Parse logging configuration"""
        cfg = self._section('logging')
        self.logging = LoggingConfig(
            level=cfg.get('level', 'INFO'),
            file=cfg.get('file'),
            console=cfg.get('console', True),
            format=cfg.get('format', self.logging.format)
        )

    def _parse_performance(self) -> None:
        """Parse performance configuration"""
        cfg = self._section('performance')
        self.performance = PerformanceConfig(
            concurrent_screening=cfg.get('concurrent_screening', True),
            max_workers=cfg.get('max_workers', 4)
        )

    def _parse_algorithm(self) -> None:
        """Parse algorithm configuration"""
        cfg = self._section('algorithm')
        self.algorithm = AlgorithmConfig(
            version=cfg.get('version', '1.0.0'),
            name=cfg.get('name', 'Edit Distance Name Matcher')
        )

    @classmethod
    def get_instance(cls, config_path: Optional[str] = None) -> 'ConfigManager':
        """Get singleton instance of ConfigManager"""
        if cls._instance is None:
            cls._instance = ConfigManager(config_path)
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Reset singleton instance (useful for testing)"""
        cls._instance = None

    def to_dict(self) -> Dict[str, Any]:
        """Export configuration as dictionary"""
        return {
            'matching': {
                'risk_thresholds': self.matching.risk_thresholds,
                'corroboration_floor': self.matching.corroboration_floor,
                'nationality_boost': self.matching.nationality_boost,
                'dob_boost': self.matching.dob_boost,
                'name_field_threshold': self.matching.name_field_threshold,
                'max_score': self.matching.max_score
            },
            'aggregation': {
                'entity_label': self.aggregation.entity_label,
                'role_labels': self.aggregation.role_labels
            },
            'audit': {
                'enabled': self.audit.enabled,
                'log_dir': self.audit.log_dir,
                'file_name': self.audit.file_name
            },
            'performance': {
                'concurrent_screening': self.performance.concurrent_screening,
                'max_workers': self.performance.max_workers
            },
            'algorithm': {
                'version': self.algorithm.version,
                'name': self.algorithm.name
            }
        }

    def _validate(self) -> None:
        """Validate configuration values

        Raises:
            ConfigurationError: If thresholds are inconsistent
        """
        matching = self.matching
        thresholds = matching.risk_thresholds

        missing = [k for k in ('high', 'medium', 'low') if k not in thresholds]
        if missing:
            raise ConfigurationError(f"Missing risk thresholds: {missing}")

        if not (thresholds['high'] > thresholds['medium'] > thresholds['low'] >= 0):
            raise ConfigurationError(
                "Risk thresholds must satisfy high > medium > low >= 0, "
                f"got {thresholds}"
            )

        if thresholds['high'] > matching.max_score:
            raise ConfigurationError(
                f"High risk threshold {thresholds['high']} exceeds max_score {matching.max_score}"
            )

        if matching.nationality_boost < 0 or matching.dob_boost < 0:
            raise ConfigurationError("Corroboration boosts must not be negative")

        if not 0 < matching.name_field_threshold <= 1:
            raise ConfigurationError(
                f"name_field_threshold must be in (0, 1], got {matching.name_field_threshold}"
            )

        # A name reported as matched must always yield a non-None tier
        if matching.name_field_threshold * 100 < thresholds['low']:
            raise ConfigurationError(
                "name_field_threshold * 100 must not be below the low risk threshold"
            )

        if self.performance.max_workers < 1:
            raise ConfigurationError("performance.max_workers must be at least 1")

        expected_roles = {'directors', 'shareholders', 'ubos', 'signatories'}
        unknown = set(self.aggregation.role_labels) - expected_roles
        if unknown:
            raise ConfigurationError(f"Unknown roles in aggregation.role_labels: {sorted(unknown)}")


def get_config(config_path: Optional[str] = None) -> ConfigManager:
    """Convenience function to get configuration instance"""
    return ConfigManager.get_instance(config_path)
