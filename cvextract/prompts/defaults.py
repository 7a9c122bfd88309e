"""
Default prompt rows, inserted at startup for task keys that have none.
Prompts are edited out-of-band afterwards; seeding never overwrites a row.
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.prompt import Prompt
from ..pipeline.tasks import ExtractionTask

logger = logging.getLogger(__name__)

_CV_EXPERT = "Tu es un expert en analyse de CV et documents professionnels."

DEFAULT_PROMPTS: dict[ExtractionTask, dict] = {
    ExtractionTask.INDIVIDUAL_DATA: {
        "title": "Données individuelles",
        "sub_title": "Identité et coordonnées",
        "button_label": "Extraire les données individuelles",
        "system_message": (
            "Tu es un assistant spécialisé dans l'extraction de données personnelles "
            "à partir de documents. Tu dois retourner uniquement du JSON valide."
        ),
        "prompt_text": """Analyse les documents suivants et extrais UNIQUEMENT les informations personnelles suivantes au format JSON strict :

{
  "nom": "",
  "prenom": "",
  "email": "",
  "age": "",
  "linkedin_url": "",
  "lieu_residence": "",
  "annees_experience": ""
}

Instructions :
- Si une information n'est pas trouvée ou n'est pas déductible, laisse le champ vide ""
- Pour l'âge : si la date de naissance est présente, calcule l'âge, sinon cherche s'il est mentionné directement
- Pour les années d'expérience : compte le nombre total d'années d'expérience professionnelle
- Pour LinkedIn : cherche une URL LinkedIn complète
- Pour le lieu de résidence : cherche l'adresse actuelle ou la ville de résidence
- Retourne UNIQUEMENT le JSON, aucun autre texte

Documents à analyser :
{documents}""",
    },
    ExtractionTask.FORMATIONS: {
        "title": "Formations",
        "sub_title": "Diplômes et certificats",
        "button_label": "Extraire les formations",
        "system_message": (
            f"{_CV_EXPERT} Tu extrais uniquement les informations de formation "
            "demandées au format JSON strict."
        ),
        "prompt_text": """Analyse des formations, diplômes et certificats
Tableau simplifié avec 4 colonnes
Nom de la formation
Année
Établissement
Catégorie : Diplômante, Certifiante, Autres formations
⚠️ Inclure les certificats même non diplômants

Retourne UNIQUEMENT un JSON avec cette structure :
[
  {
    "nom_formation": "",
    "annee": "",
    "etablissement": "",
    "categorie": ""
  }
]

Instructions :
- Si une information n'est pas trouvée, laisse le champ vide ""
- Pour l'année : utilise l'année d'obtention ou de fin de formation
- Catégorie doit être : "Diplômante", "Certifiante", ou "Autres formations"
- Retourne UNIQUEMENT le JSON, aucun autre texte

Documents à analyser :
{documents}""",
    },
    ExtractionTask.PARCOURS_PRO: {
        "title": "Parcours professionnel",
        "sub_title": "Expériences chronologiques",
        "button_label": "Extraire le parcours professionnel",
        "system_message": (
            f"{_CV_EXPERT} Tu extrais uniquement les informations d'expérience "
            "professionnelle demandées au format JSON strict."
        ),
        "prompt_text": """Tableau simplifié et chronologique des expériences professionnelles
Nom de l'entreprise
Titre du poste
Date de début
Date de fin
⚠️ Ne pas regrouper les expériences ; mentionner les évolutions internes distinctement.

Retourne UNIQUEMENT un JSON avec cette structure, classé par ordre chronologique (plus récent en premier) :
[
  {
    "entreprise": "",
    "titre_poste": "",
    "date_debut": "",
    "date_fin": ""
  }
]

Instructions :
- Si une information n'est pas trouvée, laisse le champ vide ""
- Pour les dates : utilise le format "MM/YYYY" ou "YYYY" selon les informations disponibles
- Pour la date de fin : si c'est le poste actuel, mettre "Présent" ou "En cours"
- Sépare distinctement chaque évolution de poste même dans la même entreprise
- Retourne UNIQUEMENT le JSON, aucun autre texte

Documents à analyser :
{documents}""",
    },
    ExtractionTask.AUTRES_EXPERIENCES: {
        "title": "Autres expériences",
        "sub_title": "Associatif, bénévolat, projets",
        "button_label": "Extraire les autres expériences",
        "system_message": (
            f"{_CV_EXPERT} Tu extrais uniquement les expériences extra-professionnelles "
            "au format JSON strict."
        ),
        "prompt_text": """Liste des autres expériences (associatives, bénévoles, mandats, projets personnels)

Retourne UNIQUEMENT un JSON avec cette structure :
[
  {
    "organisation": "",
    "role": "",
    "periode": "",
    "description": ""
  }
]

Instructions :
- Si une information n'est pas trouvée, laisse le champ vide ""
- N'inclus pas les postes salariés déjà présents dans le parcours professionnel
- Retourne UNIQUEMENT le JSON, aucun autre texte

Documents à analyser :
{documents}""",
    },
    ExtractionTask.REALISATIONS: {
        "title": "Réalisations",
        "sub_title": "Résultats marquants",
        "button_label": "Extraire les réalisations",
        "system_message": (
            f"{_CV_EXPERT} Tu extrais uniquement les réalisations concrètes "
            "au format JSON strict."
        ),
        "prompt_text": """Liste des réalisations concrètes et mesurables du candidat

Retourne UNIQUEMENT un JSON avec cette structure :
[
  {
    "contexte": "",
    "realisation": "",
    "resultat": ""
  }
]

Instructions :
- Privilégie les résultats chiffrés (chiffre d'affaires, équipes, délais)
- Si une information n'est pas trouvée, laisse le champ vide ""
- Retourne UNIQUEMENT le JSON, aucun autre texte

Documents à analyser :
{documents}""",
    },
    ExtractionTask.ANALYSIS: {
        "title": "Analyse",
        "sub_title": "Synthèse libre du profil",
        "button_label": "Lancer l'analyse",
        "system_message": (
            "Tu es un consultant en recrutement. Tu rédiges une analyse claire "
            "et structurée du profil à partir des documents fournis."
        ),
        "prompt_text": """Documents du candidat :
{documents}""",
    },
}


async def seed_default_prompts(db: AsyncSession) -> int:
    """Insert a default prompt for every task key without one. Returns rows added."""
    result = await db.execute(select(Prompt.name))
    existing = set(result.scalars().all())

    added = 0
    for task, fields in DEFAULT_PROMPTS.items():
        if task.value in existing:
            continue
        db.add(Prompt(name=task.value, active=True, version=1, **fields))
        added += 1

    if added:
        await db.flush()
        logger.info("Seeded %d default prompts", added)
    return added
