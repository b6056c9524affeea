"""
Acquisition Orchestrator
逐个尝试获取排序后的候选，处理需要服务端预处理 (DEFERRED) 的素材
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING, Awaitable, Callable, List, Optional, Sequence, Tuple
import logging

from .cancellation import CancellationToken
from catalog import CatalogSessionPool
from models import (
    AcquireResponse,
    AcquisitionAttempt,
    AcquisitionOutcome,
    AcquisitionResult,
    Candidate,
    SkippedCandidate,
)
from storage import Blacklist
from utils.exceptions import AcquisitionCancelled, AcquisitionError

if TYPE_CHECKING:
    from orchestrator.events import ProgressChannel


logger = logging.getLogger(__name__)

SleepFunc = Callable[[float], Awaitable[None]]


@dataclass
class _AttemptOutcome:
    attempt: AcquisitionAttempt
    response: Optional[AcquireResponse] = None


class AcquisitionOrchestrator:
    """
    获取状态机

    单个候选: ATTEMPTING -> SUCCESS | DEFERRED | FAILED
    - DEFERRED 默认跳过并加入黑名单
    - 等待模式 (仅最佳候选): 按 poll_interval 轮询，最长 wait_timeout，
      每个间隔拆成 poll_chunks 段，段间检查取消
    - 全部失败后按排序对未拉黑且不低于 emergency_floor 的候选
      (含失败和低分跳过的) 做一次紧急回退; 全部为 DEFERRED 时不做
    """

    def __init__(
        self,
        pool: CatalogSessionPool,
        blacklist: Blacklist,
        *,
        progress: Optional["ProgressChannel"] = None,
        min_acceptable_score: float = 15.0,
        emergency_floor: float = 10.0,
        wait_timeout: float = 240.0,
        poll_interval: float = 5.0,
        poll_chunks: int = 5,
        acquire_timeout: float = 60.0,
        sleep: SleepFunc = asyncio.sleep,
    ):
        self.pool = pool
        self.blacklist = blacklist
        self.progress = progress
        self.min_acceptable_score = float(min_acceptable_score)
        self.emergency_floor = float(emergency_floor)
        self.wait_timeout = float(wait_timeout)
        self.poll_interval = float(poll_interval)
        self.poll_chunks = max(1, int(poll_chunks))
        self.acquire_timeout = float(acquire_timeout)
        self._sleep = sleep

    def _emit(self, percentage: float, message: str, sequence_index: Optional[int], **data) -> None:
        if self.progress is not None:
            self.progress.emit("acquisition", percentage, message, sequence_index=sequence_index, **data)

    async def _call_acquire(self, identity: str, timeout: float) -> AcquireResponse:
        async with self.pool.lease() as client:
            return await asyncio.wait_for(client.acquire(identity), timeout=timeout)

    async def _sleep_interval(self, token: CancellationToken, seconds: float) -> None:
        """按子间隔睡眠，每段之后检查取消"""
        chunk = seconds / self.poll_chunks
        for _ in range(self.poll_chunks):
            token.raise_if_cancelled()
            await self._sleep(chunk)
            token.raise_if_cancelled()

    async def _wait_until_ready(
        self,
        candidate: Candidate,
        token: CancellationToken,
        sequence_index: Optional[int],
    ) -> Tuple[Optional[AcquireResponse], int]:
        """轮询直到 READY 或超时，返回 (响应, 额外调用次数)"""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.wait_timeout
        polls = 0

        while True:
            remaining = deadline - loop.time()
            if remaining <= 0:
                return None, polls

            await self._sleep_interval(token, min(self.poll_interval, remaining))
            remaining = deadline - loop.time()
            if remaining <= 0:
                return None, polls

            polls += 1
            try:
                response = await self._call_acquire(
                    candidate.identity, timeout=min(self.acquire_timeout, remaining)
                )
            except AcquisitionCancelled:
                raise
            except Exception as e:
                logger.warning(f"Readiness poll failed for {candidate.identity}: {e}")
                continue

            if response.status == AcquisitionOutcome.READY:
                return response, polls

            waited = self.wait_timeout - max(0.0, deadline - loop.time())
            self._emit(
                92,
                f"Waiting for asset preparation ({waited:.0f}s / {self.wait_timeout:.0f}s)",
                sequence_index,
                identity=candidate.identity,
            )

    async def _attempt(
        self,
        candidate: Candidate,
        *,
        wait: bool,
        token: CancellationToken,
        sequence_index: Optional[int],
    ) -> _AttemptOutcome:
        try:
            response = await self._call_acquire(candidate.identity, timeout=self.acquire_timeout)
        except AcquisitionCancelled:
            raise
        except Exception as e:
            error = AcquisitionError(f"acquire failed: {e}", identity=candidate.identity)
            return _AttemptOutcome(
                AcquisitionAttempt(
                    candidate=candidate,
                    outcome=AcquisitionOutcome.FAILED,
                    attempts_used=1,
                    reason=error.message,
                )
            )

        if response.status == AcquisitionOutcome.READY:
            return _AttemptOutcome(
                AcquisitionAttempt(candidate=candidate, outcome=AcquisitionOutcome.READY, attempts_used=1),
                response,
            )

        if not wait:
            self.blacklist.add(candidate.identity)
            return _AttemptOutcome(
                AcquisitionAttempt(
                    candidate=candidate,
                    outcome=AcquisitionOutcome.DEFERRED,
                    attempts_used=1,
                    reason="asset requires preparation",
                )
            )

        logger.info(f"Best candidate deferred; waiting up to {self.wait_timeout:.0f}s for {candidate.identity}")
        ready, polls = await self._wait_until_ready(candidate, token, sequence_index)
        if ready is not None:
            return _AttemptOutcome(
                AcquisitionAttempt(
                    candidate=candidate,
                    outcome=AcquisitionOutcome.READY,
                    attempts_used=1 + polls,
                ),
                ready,
            )

        self.blacklist.add(candidate.identity)
        return _AttemptOutcome(
            AcquisitionAttempt(
                candidate=candidate,
                outcome=AcquisitionOutcome.FAILED,
                attempts_used=1 + polls,
                reason=f"not ready after {self.wait_timeout:.0f}s",
            )
        )

    def _finish(
        self,
        result: AcquisitionResult,
        outcome: _AttemptOutcome,
        rank: int,
        sequence_index: Optional[int],
    ) -> AcquisitionResult:
        result.asset = outcome.response.asset_handle
        result.attribution_text = outcome.response.attribution_text
        result.candidate_rank = rank
        result.candidate = outcome.attempt.candidate
        self._emit(
            100,
            f"Acquired rank {rank}: '{outcome.attempt.candidate.title[:50]}'",
            sequence_index,
            identity=outcome.attempt.candidate.identity,
        )
        logger.info(f"Acquired {outcome.attempt.candidate.identity} (rank {rank})")
        return result

    def _skip(self, result: AcquisitionResult, candidate: Candidate, rank: int, reason: str) -> None:
        logger.info(f"Skipping rank {rank} {candidate.identity}: {reason}")
        result.skipped.append(SkippedCandidate(identity=candidate.identity, rank=rank, reason=reason))

    async def acquire_best(
        self,
        ranked: Sequence[Candidate],
        *,
        cancel: Optional[CancellationToken] = None,
        wait_for_best: bool = False,
        sequence_index: Optional[int] = None,
    ) -> AcquisitionResult:
        """
        按排序获取第一个可用素材

        Args:
            ranked: 已排序候选
            cancel: 取消令牌
            wait_for_best: 最佳候选 DEFERRED 时是否等待
            sequence_index: 片段序号 (用于进度事件)

        Returns:
            AcquisitionResult (失败时 success=False 并带 skipped 列表)

        Raises:
            AcquisitionCancelled: 用户取消
        """
        token = cancel or CancellationToken()
        result = AcquisitionResult()
        attempted_any = False
        total = max(1, len(ranked))

        for rank, candidate in enumerate(ranked, start=1):
            token.raise_if_cancelled()

            if candidate.identity in self.blacklist:
                self._skip(result, candidate, rank, "blacklisted (deferred earlier)")
                continue
            if candidate.final_score < self.min_acceptable_score:
                self._skip(
                    result, candidate, rank,
                    f"score {candidate.final_score:.0f} below minimum {self.min_acceptable_score:.0f}",
                )
                continue

            wait = wait_for_best and not attempted_any
            attempted_any = True
            self._emit(
                90 + 8 * (rank - 1) / total,
                f"Trying rank {rank}: '{candidate.title[:50]}'",
                sequence_index,
                identity=candidate.identity,
            )
            outcome = await self._attempt(candidate, wait=wait, token=token, sequence_index=sequence_index)
            result.attempts.append(outcome.attempt)

            if outcome.attempt.outcome == AcquisitionOutcome.READY:
                return self._finish(result, outcome, rank, sequence_index)
            self._skip(result, candidate, rank, outcome.attempt.reason or outcome.attempt.outcome.value)

        if result.skipped and all(s.identity in self.blacklist for s in result.skipped):
            logger.info("Every candidate was deferred; skipping emergency fallback")
            emergency: List[Tuple[int, Candidate]] = []
        else:
            emergency = [
                (rank, c)
                for rank, c in enumerate(ranked, start=1)
                if c.final_score >= self.emergency_floor and c.identity not in self.blacklist
            ]
        if emergency:
            logger.info(f"Emergency fallback over {len(emergency)} candidates")
        for rank, candidate in emergency:
            token.raise_if_cancelled()
            outcome = await self._attempt(candidate, wait=False, token=token, sequence_index=sequence_index)
            result.attempts.append(outcome.attempt)
            if outcome.attempt.outcome == AcquisitionOutcome.READY:
                result.used_emergency_fallback = True
                return self._finish(result, outcome, rank, sequence_index)
            self._skip(
                result, candidate, rank,
                f"emergency fallback: {outcome.attempt.reason or outcome.attempt.outcome.value}",
            )

        logger.error(f"No candidate could be acquired ({len(result.skipped)} skipped)")
        self._emit(100, "No candidate could be acquired", sequence_index, skipped=len(result.skipped))
        return result
