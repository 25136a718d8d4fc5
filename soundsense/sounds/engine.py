"""
Motor de sons - orquestrador principal.
"""

import random
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from .channel import Channel
from .errors import PlaybackError
from .matcher import normalize_line
from .models import LoopDirective, RuleEntry
from .parser import load_rules
from .sink import PlaybackSink
from ..config import DEFAULT_CHANNEL, MASTER_VOLUME
from ..ws_messages import make_message
from ..logger import get_logger

logger = get_logger(__name__)

Notify = Callable[[Dict], None]


def _discard(message: Dict) -> None:
    pass


class SoundEngine:
    """Casa linhas do log com as regras do soundpack e comanda os canais."""

    def __init__(
        self,
        rules: Sequence[RuleEntry],
        channel_names: Iterable[str],
        sink: PlaybackSink,
        notify: Optional[Notify] = None,
        rng: Optional[random.Random] = None,
        master_volume: float = MASTER_VOLUME,
    ):
        """
        Inicializa motor com regras, canais e RNG.

        Args:
            rules: Regras em ordem de documento
            channel_names: Canais a criar (o canal padrão é sempre incluído)
            sink: Dispositivo de reprodução
            notify: Destino das notificações para a UI (não pode bloquear)
            rng: Fonte de aleatoriedade (injete uma com seed nos testes)
            master_volume: Volume geral inicial
        """
        self._rules = tuple(rules)
        self._sink = sink
        self._notify = notify or _discard
        self._rng = rng or random.Random()
        self._master_volume = master_volume
        self._channels: Dict[str, Channel] = {}
        referenced = [rule.channel for rule in self._rules if rule.channel is not None]
        for name in [DEFAULT_CHANNEL, *channel_names, *referenced]:
            if name not in self._channels:
                self._channels[name] = Channel(name, sink, master_volume=master_volume)
        self._active_count = 0
        self._last_status: Dict[str, int] = {}

        logger.info(f"Motor de sons inicializado com {len(self._rules)} regras e {len(self._channels)} canais")

    @classmethod
    def load(
        cls,
        root: Path,
        sink: PlaybackSink,
        notify: Optional[Notify] = None,
        rng: Optional[random.Random] = None,
        master_volume: float = MASTER_VOLUME,
    ) -> "SoundEngine":
        """Carrega um soundpack e anuncia os canais para a UI.

        Raises:
            RuleLoadError: configuração inválida (o carregamento é abortado)
        """
        loaded = load_rules(root)
        engine = cls(loaded.rules, loaded.channels, sink, notify=notify, rng=rng, master_volume=master_volume)
        engine._notify(make_message("channels", {"names": engine.channel_names}))
        return engine

    @property
    def rules(self) -> Sequence[RuleEntry]:
        return self._rules

    @property
    def channel_names(self) -> List[str]:
        return list(self._channels.keys())

    @property
    def active_count(self) -> int:
        """Total de sons ativos em todos os canais (atualizado no tick)."""
        return self._active_count

    @property
    def master_volume(self) -> float:
        return self._master_volume

    def channel(self, name: str) -> Optional[Channel]:
        return self._channels.get(name)

    def process_line(self, line: str) -> int:
        """
        Processa uma linha do log e dispara os sons correspondentes.

        Args:
            line: Linha de texto do log

        Returns:
            Número de regras que casaram com a linha
        """
        # Sem CR/LF e sem códigos ANSI; linhas vazias também passam pelas regras
        text = normalize_line(line)

        rng = self._rng
        matched_rules = 0

        for rule in self._rules:
            if not rule.pattern.search(text):
                continue
            matched_rules += 1
            logger.debug(f"Regra casou: '{rule.pattern.pattern}'")

            can_play = True
            if rule.probability is not None:
                # Comparação herdada dos soundpacks: quase sempre verdadeira (ver DESIGN.md)
                can_play &= rule.probability < rng.getrandbits(32)
            if rule.concurrency is not None:
                # Contagem global, não a do canal alvo
                can_play &= self._active_count <= rule.concurrency

            if can_play:
                self._dispatch(rule, rng)

            if rule.halt_on_match:
                break

        return matched_rules

    def _dispatch(self, rule: RuleEntry, rng: random.Random) -> None:
        """Executa a ação da regra no canal correspondente."""
        channel = self._channels[rule.channel or DEFAULT_CHANNEL]
        files = rule.files

        try:
            if rule.channel is not None and rule.loop is LoopDirective.START:
                logger.debug(f"Canal {channel.name}: loop=start")
                channel.start_or_replace_loop(files, rng, rule.delay or 0, rule.random_balance)
            elif rule.channel is not None and rule.loop is LoopDirective.STOP:
                logger.debug(f"Canal {channel.name}: loop=stop")
                channel.start_or_replace_loop((), rng)
                if files:
                    channel.add_one_shot(rng.choice(files), rng, rule.delay or 0, rule.random_balance)
            elif files and channel.active_count() <= self._ceiling(rule):
                channel.add_one_shot(rng.choice(files), rng, rule.delay or 0, rule.random_balance)
        except PlaybackError as e:
            self._playback_failed(rule, channel.name, e)

    def _playback_failed(self, rule: RuleEntry, channel: str, error: PlaybackError) -> None:
        logger.warning(
            f"Falha ao tocar {error.path} (regra '{rule.pattern.pattern}' de {rule.source}): {error.detail}",
            extra={"channel": channel, "rule": rule.pattern.pattern, "path": error.path},
        )

    @staticmethod
    def _ceiling(rule: RuleEntry) -> float:
        return rule.concurrency if rule.concurrency is not None else float("inf")

    def tick(self) -> int:
        """Manutenção periódica: recolhe sons finalizados e recalcula o total."""
        status: Dict[str, int] = {}
        total = 0
        for name, channel in self._channels.items():
            count = channel.reap()
            status[name] = count
            total += count
        self._active_count = total

        if status != self._last_status:
            self._last_status = status
            self._notify(make_message("status", {"channels": status, "active": total}))
        return total

    def set_volume(self, channel_name: str, volume: float) -> bool:
        """Ajusta o volume de um canal, ou o master com 'all'."""
        if channel_name == "all":
            self._master_volume = volume
            for channel in self._channels.values():
                channel.set_volume(channel.volume, self._master_volume)
            logger.info(f"Volume master ajustado para {volume}")
            return True

        channel = self._channels.get(channel_name)
        if channel is None:
            logger.warning(f"Volume ignorado: canal desconhecido '{channel_name}'")
            return False
        channel.set_volume(volume, self._master_volume)
        logger.info(f"Volume do canal {channel_name} ajustado para {volume}")
        return True

    def shutdown(self) -> None:
        """Para todos os sons de todos os canais."""
        for channel in self._channels.values():
            channel.stop_all()
        self._active_count = 0
        logger.info("Motor de sons parado")
