# evaluation_rh/synthese.py
"""
Ce module contient le client de synthèse des rapports d'évaluation.

Il met en forme une liste ordonnée de feedbacks en un prompt unique, l'envoie
avec une consigne système fixe à un service de génération de texte compatible
avec l'API « chat completions », et retourne le texte produit tel quel.
L'enregistrement du texte dans le rapport reste à la charge de l'appelant.

Il est indépendant de Flask : la configuration (clé, URL, modèle) est passée
au constructeur.
"""

import datetime
from typing import Any

import httpx

from .services import ConfigurationError, NoInputError, UpstreamError

URL_API_PAR_DEFAUT = "https://api.openai.com/v1/chat/completions"
MODELE_PAR_DEFAUT = "gpt-4o-mini"

MOIS_FR = (
    "janvier",
    "février",
    "mars",
    "avril",
    "mai",
    "juin",
    "juillet",
    "août",
    "septembre",
    "octobre",
    "novembre",
    "décembre",
)

PROMPT_SYSTEME = """Rôle

Tu es un expert RH virtuel du cabinet FIDU AUDIT RH.
Ta mission est d'aider les managers (Admins et Chefs de Mission) à rédiger des rapports d'entretien annuel pour leurs collaborateurs.

Tâche

À partir d'une liste de feedbacks bruts, parfois incomplets, factuels ou rédigés rapidement au fil de l'eau durant la SAISON, tu dois produire un rapport d'évaluation structuré, clair, synthétique, cohérent et utilisable dans l'outil EasyRH.

Contraintes générales (IMPÉRATIVES)

Tu n'inventes rien.
Tu reformules, synthétises et organises l'information fournie, mais tu n'ajoutes aucun fait non présent dans les feedbacks.

Tu restes strictement factuel.
Si une rubrique manque d'informations, tu rédiges une phrase courte neutre, ou indiques "Non applicable" lorsque spécifié.

Ton utilisé :

Tutoiement impératif ("tu").

Style professionnel, bienveillant et constructif.

Pas de langue de bois ni de formulations blessantes.

Écrire des phrases courtes et simples.

Longueur :
Rédige un texte synthétique (idéalement moins de 2 000 caractères).
Pas de pavés.

Aucune mention de l'IA ou du processus de génération.

Structure attendue (FORMAT STRICT À RESPECTER)

Tu dois générer le rapport sous ce format exact :

    Bilan global de l'année

Bilan global : [Synthèse générale basée sur les feedbacks]

Principales satisfactions : [Points forts majeurs factuels]

Principales difficultés et actions : [Points d'attention + pistes d'amélioration concrètes]

Remarques éventuelles : [Autres points pertinents ou "RAS"]

    Ton activité

Synthèse poste/portefeuille : [Résumé du périmètre réellement constaté dans les feedbacks]

Classification et champs d'intervention : [Adéquation fiche de poste / interventions réelles]

Comités transverses : [Participation ou "Non applicable"]

Retour contrôle qualité : [Synthèse des retours techniques s'ils existent, sinon "RAS"]

    Tes compétences

3.1 Techniques : [Forces techniques + axes de progression concrets]

3.2 Organisationnelles : [Autonomie, efficacité, respect des délais]

3.3 Qualités personnelles/comportementales : [Relationnel, collaboration, attitude client]

3.4 Management : [Éléments présents OU indiquer « Non applicable »]

3.5 Adéquation classification/poste : [En phase / En écart]

    Objectifs pour l'année à venir

[Objectifs réalistes basés uniquement sur les axes d'amélioration identifiés]

    Avis global du manager

[Synthèse finale motivante, adressée en "tu", ton positif, orientée progression]"""


def formater_date_fr(valeur: datetime.date | datetime.datetime | str) -> str:
    """Formate une date au format français long : '5 mars 2024'."""
    if isinstance(valeur, str):
        valeur = datetime.datetime.fromisoformat(valeur.replace("Z", "+00:00"))
    return f"{valeur.day} {MOIS_FR[valeur.month - 1]} {valeur.year}"


def _lire(objet: Any, nom: str) -> Any:
    if isinstance(objet, dict):
        return objet.get(nom)
    return getattr(objet, nom, None)


def formater_feedback(numero: int, feedback: Any) -> str:
    """
    Rend un feedback sous la forme :
    [Feedback <n> – <date> – <prénom> <nom>, Mission: <mission>] : <contenu>
    """
    auteur = _lire(feedback, "author") or {}
    entete = f"Feedback {numero} – {formater_date_fr(_lire(feedback, 'created_at'))} – {_lire(auteur, 'first_name')} {_lire(auteur, 'last_name')}"
    mission = _lire(feedback, "mission")
    if mission:
        entete += f", Mission: {mission}"
    return f"[{entete}] : {_lire(feedback, 'content')}"


def formater_feedbacks(feedbacks: list[Any]) -> str:
    """Met en forme les feedbacks dans l'ordre fourni, séparés par une ligne vide."""
    return "\n\n".join(formater_feedback(i, f) for i, f in enumerate(feedbacks, start=1))


def construire_prompt_utilisateur(feedbacks: list[Any]) -> str:
    return f"""Données d'entrée (feedbacks bruts)

Voici la liste des feedbacks structurés pour ce collaborateur :

{formater_feedbacks(feedbacks)}"""


def _erreur_depuis_reponse(response: httpx.Response) -> UpstreamError:
    """Construit une UpstreamError à partir d'une réponse HTTP en échec."""
    error = "Échec de la génération du rapport"
    details: str | None = response.text or None
    status: int | None = response.status_code
    try:
        payload = response.json()
    except ValueError:
        payload = None

    if isinstance(payload, dict):
        erreur_brute = payload.get("error")
        if isinstance(erreur_brute, dict):
            error = erreur_brute.get("message") or error
        elif erreur_brute:
            error = str(erreur_brute)
        if payload.get("details") is not None:
            details = str(payload["details"])
        if isinstance(payload.get("status"), int):
            status = payload["status"]
    return UpstreamError(status=status, error=error, details=details)


class ClientSynthese:
    """Client du service de génération de texte utilisé pour rédiger les rapports."""

    def __init__(
        self,
        credential: str | None,
        api_url: str = URL_API_PAR_DEFAUT,
        model: str = MODELE_PAR_DEFAUT,
        timeout: float = 60.0,
        temperature: float = 0.7,
        max_tokens: int = 3000,
        transport: httpx.BaseTransport | None = None,
    ):
        self.credential = credential
        self.api_url = api_url
        self.model = model
        self.timeout = timeout
        self.temperature = temperature
        self.max_tokens = max_tokens
        # Transport injectable (httpx.MockTransport dans les tests).
        self.transport = transport

    @classmethod
    def depuis_config(cls, config: Any) -> "ClientSynthese":
        return cls(
            credential=config.get("OPENAI_API_KEY"),
            api_url=config.get("GENERATION_API_URL") or URL_API_PAR_DEFAUT,
            model=config.get("GENERATION_MODEL") or MODELE_PAR_DEFAUT,
            timeout=float(config.get("GENERATION_TIMEOUT") or 60.0),
            transport=config.get("GENERATION_TRANSPORT"),
        )

    def _corps_requete(self, feedbacks: list[Any]) -> dict[str, Any]:
        return {
            "model": self.model,
            "messages": [
                {"role": "system", "content": PROMPT_SYSTEME},
                {"role": "user", "content": construire_prompt_utilisateur(feedbacks)},
            ],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }

    def generer_rapport(self, feedbacks: list[Any]) -> str:
        """
        Génère le texte du rapport à partir des feedbacks, dans l'ordre fourni.

        Lève ConfigurationError sans clé, NoInputError sans feedback (avant tout
        appel réseau) et UpstreamError si le service répond en erreur ou par un
        corps illisible.
        """
        if not self.credential:
            raise ConfigurationError("Clé API de génération manquante. Veuillez configurer OPENAI_API_KEY.")
        if not feedbacks:
            raise NoInputError()

        headers = {"Authorization": f"Bearer {self.credential}", "Content-Type": "application/json"}
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                response = client.post(self.api_url, json=self._corps_requete(feedbacks), headers=headers)
        except httpx.HTTPError as e:
            raise UpstreamError(status=None, error="Service de génération injoignable", details=str(e))

        if response.is_error:
            raise _erreur_depuis_reponse(response)

        try:
            data = response.json()
            if not isinstance(data, dict):
                raise ValueError("corps JSON inattendu")
            if "report" in data:
                return data["report"] or ""
            choices = data.get("choices") or [{}]
            return (choices[0].get("message") or {}).get("content") or ""
        except (ValueError, AttributeError, IndexError, TypeError):
            raise UpstreamError(
                status=response.status_code,
                error="Réponse invalide du service de génération",
                details=response.text or None,
            )
