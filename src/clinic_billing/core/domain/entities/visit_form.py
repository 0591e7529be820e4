from __future__ import annotations

from dataclasses import dataclass, field

from clinic_billing.core.domain.entities.visit_entity import (
    DiscountSpec,
    PaymentType,
    PlanStep,
    VisitCompletion,
    XrayImageRef,
)
from clinic_billing.core.domain.services.line_item_accumulator import LineItemAccumulator


@dataclass
class VisitCompletionForm:
    """
    Estado local do formulário "concluir consulta".
    Mutável até o envio; fechar sem salvar simplesmente descarta o objeto.
    """
    diagnosis: str = ""
    items: LineItemAccumulator = field(default_factory=LineItemAccumulator)
    discount: DiscountSpec = field(default_factory=DiscountSpec.none)
    payment_type: PaymentType = PaymentType.CASH
    affected_teeth: set[str] = field(default_factory=set)
    plan_steps: list[PlanStep] = field(default_factory=list)
    comment: str | None = None
    xray_images: list[XrayImageRef] = field(default_factory=list)

    # ── dentes ──────────────────────────────────────────────
    def toggle_tooth(self, tooth: str) -> None:
        if tooth in self.affected_teeth:
            self.affected_teeth.discard(tooth)
        else:
            self.affected_teeth.add(tooth)

    # ── plano ───────────────────────────────────────────────
    def add_plan_step(self, description: str) -> None:
        self.plan_steps.append(PlanStep(description=description))

    def set_plan_step_completed(self, index: int, completed: bool = True) -> None:
        step = self.plan_steps[index]
        self.plan_steps[index] = PlanStep(description=step.description, completed=completed)

    # ── raio-x ──────────────────────────────────────────────
    def attach_xray(self, ref: XrayImageRef) -> None:
        if all(img.url != ref.url for img in self.xray_images):
            self.xray_images.append(ref)

    def detach_xray(self, url: str) -> None:
        self.xray_images = [img for img in self.xray_images if img.url != url]

    def to_completion(self) -> VisitCompletion:
        return VisitCompletion(
            diagnosis=self.diagnosis,
            line_items=self.items.snapshot(),
            discount=self.discount,
            payment_type=self.payment_type,
            affected_teeth=frozenset(self.affected_teeth),
            plan_steps=tuple(self.plan_steps),
            comment=self.comment,
            xray_image_refs=tuple(img.url for img in self.xray_images),
        )
