"""
Fiscal obligations of a French company, derived from its fiscal profile.

Pure module: no database access. For a calendar year Y it yields the
obligations falling due during Y.

TVA, réel simplifié (art. 287 III CGI):
    - no acompte during the first fiscal year, no CA12 before May of the
      following year;
    - CA12 for fiscal year Y-1 on the 2nd business day of May Y;
    - acomptes of 55 % (15 July) and 40 % (15 December) of the net TVA of
      Y-1, moved to the next business day when needed.

Liasse fiscale (art. 223 CGI): 2nd business day of May Y for fiscal year Y-1.

CFE (art. 1478 CGI): exempt in the creation calendar year, due 15 December
afterwards.
"""

import logging
from datetime import date, timedelta
from decimal import Decimal, ROUND_HALF_UP

from models.base import new_id
from models.enums import ObligationStatus, ObligationType, TvaRegime
from schemas.fiscal import CompanyConfig, GenerateObligationsResult, Obligation
from services.business_days import adjust_to_business_day, nth_business_day_of_month

logger = logging.getLogger(__name__)

TVA_ACOMPTE_JULY_RATE = Decimal("0.55")
TVA_ACOMPTE_DECEMBER_RATE = Decimal("0.40")
WARNING_DAYS_BEFORE = 30


def _make_obligation(**fields) -> Obligation:
    return Obligation(
        id=new_id(),
        warning_date=fields["due_date"] - timedelta(days=WARNING_DAYS_BEFORE),
        **fields,
    )


def _annual_filing_date(year: int) -> date:
    # May 1st is always a holiday, hence the 2nd business day
    return nth_business_day_of_month(year, 5, 2)


def is_first_fiscal_year(fiscal_year: int, config: CompanyConfig) -> bool:
    return fiscal_year == config.first_closing_date.year


def is_first_calendar_year(calendar_year: int, config: CompanyConfig) -> bool:
    return calendar_year == config.creation_date.year


def _tva_reel_simplifie(year: int, config: CompanyConfig, warnings: list[str]) -> list[Obligation]:
    obligations = []
    creation_year = config.creation_date.year
    previous = year - 1

    if previous >= creation_year:
        first = is_first_fiscal_year(previous, config)
        if first:
            label = f"CA12 - Première déclaration annuelle (exercice {previous})"
            detail = f"Première déclaration suite à la création, aucun acompte n'a été versé en {previous}. "
        else:
            label = f"CA12 - Déclaration annuelle TVA (exercice {previous})"
            detail = f"Solde = TVA annuelle {previous} moins les acomptes versés (55 % + 40 %). "
        obligations.append(_make_obligation(
            obligation_key=f"TVA_CA12_{year}",
            type=ObligationType.TVA_CA12,
            label=label,
            description=(
                f"Déclaration annuelle de TVA (formulaire CA12) pour l'exercice clos le 31/12/{previous}. "
                + detail + "Dépôt en ligne obligatoire."
            ),
            due_date=_annual_filing_date(year),
            fiscal_year=previous,
            calendar_year=year,
            is_first_year=first,
            tags=["TVA", "CA12", "annuel"],
            legal_reference="Art. 287 III CGI - BOFiP TVA-DECLA-20-20",
        ))

    if is_first_fiscal_year(year, config) or year < creation_year:
        return obligations

    base_tva = config.tva_by_fiscal_year.get(previous)
    if base_tva is None:
        warnings.append(
            f"TVA nette de l'exercice {previous} non renseignée, "
            f"montants des acomptes {year} non calculables. "
            f"Renseigner tva_by_fiscal_year[{previous}] dans la configuration."
        )

    def share(rate: Decimal) -> Decimal | None:
        if base_tva is None:
            return None
        return (Decimal(base_tva) * rate).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)

    obligations.append(_make_obligation(
        obligation_key=f"TVA_ACOMPTE_JUILLET_{year}",
        type=ObligationType.TVA_ACOMPTE,
        label=f"Acompte TVA - Juillet {year} (55 %)",
        description=(
            f"Premier acompte TVA réel simplifié : 55 % de la TVA nette de l'exercice {previous}. "
            f"Versement au plus tard le 15 juillet {year} (ou jour ouvré suivant)."
        ),
        due_date=adjust_to_business_day(date(year, 7, 15)),
        fiscal_year=year,
        calendar_year=year,
        amount=share(TVA_ACOMPTE_JULY_RATE),
        tags=["TVA", "acompte", "juillet"],
        legal_reference="Art. 287 III CGI",
    ))
    obligations.append(_make_obligation(
        obligation_key=f"TVA_ACOMPTE_DECEMBRE_{year}",
        type=ObligationType.TVA_ACOMPTE,
        label=f"Acompte TVA - Décembre {year} (40 %)",
        description=(
            f"Deuxième acompte TVA réel simplifié : 40 % de la TVA nette de l'exercice {previous}. "
            f"Versement au plus tard le 15 décembre {year} (ou jour ouvré suivant)."
        ),
        due_date=adjust_to_business_day(date(year, 12, 15)),
        fiscal_year=year,
        calendar_year=year,
        amount=share(TVA_ACOMPTE_DECEMBER_RATE),
        tags=["TVA", "acompte", "décembre"],
        legal_reference="Art. 287 III CGI",
    ))
    return obligations


def _liasse(year: int, config: CompanyConfig) -> list[Obligation]:
    previous = year - 1
    if previous < config.creation_date.year:
        return []

    first = is_first_fiscal_year(previous, config)
    return [_make_obligation(
        obligation_key=f"LIASSE_{year}",
        type=ObligationType.LIASSE,
        label=(
            f"Liasse fiscale - Première clôture (exercice {previous})"
            if first else f"Liasse fiscale (exercice {previous})"
        ),
        description=(
            f"Dépôt de la liasse fiscale pour l'exercice clos le 31/12/{previous}. "
            "Délai légal : 2ème jour ouvré de mai. Télétransmission EDI obligatoire. "
            "Formulaire 2065 et annexes."
        ),
        due_date=_annual_filing_date(year),
        fiscal_year=previous,
        calendar_year=year,
        is_first_year=first,
        tags=["liasse", "IS", "annuel", "comptabilité"],
        legal_reference="Art. 223 CGI - Formulaire DGFiP 2065",
    )]


def _cfe(year: int, config: CompanyConfig) -> list[Obligation]:
    if is_first_calendar_year(year, config):
        return []

    creation_year = config.creation_date.year
    first_due = year == creation_year + 1
    description = f"Paiement de la CFE au plus tard le 15 décembre {year}. "
    if first_due:
        description += f"Première CFE due (exonération en {creation_year}, première année civile). "
    description += "Montant fixé par l'avis d'imposition de la commune, paiement en ligne."

    return [_make_obligation(
        obligation_key=f"CFE_{year}",
        type=ObligationType.CFE,
        label=f"CFE - Cotisation Foncière des Entreprises {year}",
        description=description,
        due_date=adjust_to_business_day(date(year, 12, 15)),
        fiscal_year=year,
        calendar_year=year,
        is_first_year=first_due,
        amount=config.cfe_estimated_amount,
        tags=["CFE", "impôts locaux", "décembre"],
        legal_reference="Art. 1447 et 1478 CGI",
    )]


def generate_obligations(year: int, config: CompanyConfig, today: date | None = None) -> GenerateObligationsResult:
    """Obligations falling due during calendar ``year``, sorted by due date."""
    warnings: list[str] = []
    obligations: list[Obligation] = []

    if config.tva_regime == TvaRegime.REEL_SIMPLIFIE:
        obligations.extend(_tva_reel_simplifie(year, config, warnings))
    elif config.tva_regime == TvaRegime.REEL_NORMAL:
        warnings.append("Régime réel normal (CA3) non pris en charge, aucune échéance TVA générée.")

    obligations.extend(_liasse(year, config))
    obligations.extend(_cfe(year, config))

    if config.urssaf_enabled:
        warnings.append("Échéances URSSAF non prises en charge, à suivre selon la structure juridique.")

    obligations.sort(key=lambda o: o.due_date)

    today = today or date.today()
    for obligation in obligations:
        if obligation.status == ObligationStatus.PENDING and obligation.due_date < today:
            obligation.status = ObligationStatus.OVERDUE

    logger.debug("Generated %d obligations for %d", len(obligations), year)
    return GenerateObligationsResult(year=year, obligations=obligations, config=config, warnings=warnings)


def generate_multi_year_obligations(
    from_year: int, to_year: int, config: CompanyConfig, today: date | None = None
) -> list[GenerateObligationsResult]:
    if from_year > to_year:
        raise ValueError("from_year must be <= to_year")
    return [generate_obligations(year, config, today) for year in range(from_year, to_year + 1)]
