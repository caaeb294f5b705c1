"""
공통 런타임 유틸리티

- setup_logging(): config/logging.yml 로깅 설정을 불러오고, 없으면 기본 로깅으로 대체
"""
from __future__ import annotations

import logging
import logging.config
import os

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from model_combiner.settings import ROOT_DIR, settings


def setup_logging(config_rel_path: str = os.path.join("config", "logging.yml")) -> None:
    """로깅 설정을 초기화합니다.

    - 프로젝트 루트 기준 `config/logging.yml` 파일이 있으면 dictConfig로 로드합니다.
    - 없거나 잘못된 파일이면 `settings.log_level` 기준 basicConfig로 대체합니다.

    Args:
        config_rel_path: 프로젝트 루트 기준 로깅 YAML 파일의 상대 경로.
    """
    cfg_path = os.path.join(ROOT_DIR, config_rel_path)
    if os.path.exists(cfg_path):
        try:
            yaml = YAML(typ="safe")
            with open(cfg_path, "r", encoding="utf-8") as f:
                data = yaml.load(f) or {}
            if isinstance(data, dict) and data:
                logging.config.dictConfig(data)
                return
        except (OSError, YAMLError, ValueError) as e:
            logging.getLogger(__name__).warning(f"로깅 설정 파일 오류 {cfg_path}: {e}")

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
