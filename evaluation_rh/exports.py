# evaluation_rh/exports.py
"""
Ce module contient les fonctions de génération de documents pour l'exportation.

- Le rapport d'évaluation annuelle au format PDF (reportlab). La mise en page
  est calculée d'abord (`mettre_en_page`), sous forme de blocs positionnés,
  puis dessinée sur le canevas. Le texte du rapport utilise un balisage
  minimal, traité ligne par ligne.
- Le suivi d'une saison au format Excel (openpyxl).

Il est indépendant de Flask et se concentre uniquement sur la création des
documents à partir de données brutes fournies en argument.
"""

import datetime
import io
import re
from typing import Any, NamedTuple

import openpyxl
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.lib.utils import simpleSplit
from reportlab.pdfgen import canvas

from .politique import libelle_role, libelle_statut
from .synthese import formater_date_fr

# Dimensions en millimètres, origine en haut à gauche de la page.
LARGEUR_PAGE = A4[0] / mm
HAUTEUR_PAGE = A4[1] / mm
MARGE = 20.0
LARGEUR_UTILE = LARGEUR_PAGE - 2 * MARGE
RETRAIT_PUCE = 5.0

POLICE = "Helvetica"
POLICE_GRAS = "Helvetica-Bold"


class Bloc(NamedTuple):
    """Un élément positionné de la mise en page."""

    type: str
    page: int
    x: float
    y: float
    lignes: tuple[str, ...]
    police: str = POLICE
    taille: float = 10
    interligne: float = 5


class MiseEnPage:
    def __init__(self) -> None:
        self.blocs: list[Bloc] = []
        self.nb_pages = 1

    @property
    def blocs_contenu(self) -> list[Bloc]:
        """Blocs issus du texte du rapport (sans l'en-tête ni la mention de génération)."""
        return [b for b in self.blocs if b.type in ("titre_section", "sous_titre", "puce", "texte", "espace")]


def _lire(objet: Any, nom: str) -> Any:
    if isinstance(objet, dict):
        return objet.get(nom)
    return getattr(objet, nom, None)


def _decouper(texte: str, police: str, taille: float, largeur: float) -> tuple[str, ...]:
    """Découpe un texte pour qu'il tienne dans la largeur donnée (en mm)."""
    return tuple(simpleSplit(texte, police, taille, largeur * mm)) or ("",)


class _Curseur:
    """Position verticale courante ; passe à la page suivante au-delà de la limite donnée."""

    def __init__(self, mise_en_page: MiseEnPage) -> None:
        self.mise_en_page = mise_en_page
        self.y = MARGE

    def saut_si_depasse(self, limite: float) -> None:
        if self.y > limite:
            self.mise_en_page.nb_pages += 1
            self.y = MARGE

    def ajouter(self, type_bloc: str, lignes: tuple[str, ...], police: str, taille: float, interligne: float, avance: float, x: float = MARGE) -> None:
        self.mise_en_page.blocs.append(Bloc(type_bloc, self.mise_en_page.nb_pages, x, self.y, lignes, police, taille, interligne))
        self.y += avance


def _ajouter_ligne_contenu(curseur: _Curseur, ligne: str) -> None:
    if ligne.strip() == "":
        curseur.ajouter("espace", (), POLICE, 10, 0, 5)
    elif ligne.startswith("##"):
        lignes = _decouper(re.sub(r"^##\s*", "", ligne), POLICE_GRAS, 12, LARGEUR_UTILE)
        curseur.ajouter("sous_titre", lignes, POLICE_GRAS, 12, 7, len(lignes) * 7 + 5)
    elif ligne.startswith("#"):
        lignes = _decouper(re.sub(r"^#\s*", "", ligne), POLICE_GRAS, 14, LARGEUR_UTILE)
        curseur.ajouter("titre_section", lignes, POLICE_GRAS, 14, 8, len(lignes) * 8 + 5)
    elif ligne.startswith(("*", "-")):
        texte = "• " + re.sub(r"^[*-]\s*", "", ligne)
        lignes = _decouper(texte, POLICE, 10, LARGEUR_UTILE - RETRAIT_PUCE)
        curseur.ajouter("puce", lignes, POLICE, 10, 5, len(lignes) * 5 + 3, x=MARGE + RETRAIT_PUCE / 2)
    else:
        lignes = _decouper(ligne.replace("**", ""), POLICE, 10, LARGEUR_UTILE)
        curseur.ajouter("texte", lignes, POLICE, 10, 5, len(lignes) * 5 + 3)


def mettre_en_page(collaborateur: Any, saison: Any, contenu: str | None, statut: str, date_generation: datetime.date | None = None) -> MiseEnPage:
    """
    Calcule la mise en page complète du rapport : en-tête, corps et mention de
    génération. Le résultat ne dépend que des arguments, ce qui rend l'export
    reproductible (même nombre de pages pour les mêmes entrées).
    """
    mise_en_page = MiseEnPage()
    curseur = _Curseur(mise_en_page)

    curseur.ajouter("titre", ("Rapport d'évaluation annuelle",), POLICE_GRAS, 20, 0, 15, x=LARGEUR_PAGE / 2)
    entetes = (
        f"Collaborateur: {_lire(collaborateur, 'first_name')} {_lire(collaborateur, 'last_name')}",
        f"Poste: {libelle_role(_lire(collaborateur, 'role'))}",
        f"Saison: {_lire(saison, 'name')}",
        f"Statut: {libelle_statut(statut)}",
    )
    for i, entete in enumerate(entetes):
        curseur.ajouter("entete", (entete,), POLICE, 12, 0, 15 if i == len(entetes) - 1 else 8)
    curseur.ajouter("separateur", (), POLICE, 10, 0, 10)

    for ligne in (contenu or "").split("\n"):
        curseur.saut_si_depasse(HAUTEUR_PAGE - MARGE)
        _ajouter_ligne_contenu(curseur, ligne)

    curseur.y += 20
    curseur.saut_si_depasse(HAUTEUR_PAGE - MARGE - 20)
    date_generation = date_generation or datetime.date.today()
    curseur.ajouter("pied", (f"Document généré le {formater_date_fr(date_generation)}",), POLICE, 8, 0, 0)
    return mise_en_page


def nom_fichier_rapport(collaborateur: Any, saison: Any) -> str:
    """Nom du fichier PDF : rapport_<nom>_<saison>.pdf, caractères non alphanumériques de la saison remplacés par '_'."""
    nom_saison = re.sub(r"[^A-Za-z0-9]", "_", _lire(saison, "name") or "")
    return f"rapport_{_lire(collaborateur, 'last_name')}_{nom_saison}.pdf"


def _dessiner_bloc(pdf: canvas.Canvas, bloc: Bloc) -> None:
    y_pdf = (HAUTEUR_PAGE - bloc.y) * mm
    if bloc.type == "separateur":
        pdf.setStrokeColorRGB(200 / 255, 200 / 255, 200 / 255)
        pdf.line(MARGE * mm, y_pdf, (LARGEUR_PAGE - MARGE) * mm, y_pdf)
        return
    if not bloc.lignes:
        return

    pdf.setFont(bloc.police, bloc.taille)
    if bloc.type == "pied":
        pdf.setFillColorRGB(100 / 255, 100 / 255, 100 / 255)
    else:
        pdf.setFillColorRGB(0, 0, 0)

    for i, ligne in enumerate(bloc.lignes):
        y_ligne = y_pdf - i * bloc.interligne * mm
        if bloc.type == "titre":
            pdf.drawCentredString(bloc.x * mm, y_ligne, ligne)
        else:
            pdf.drawString(bloc.x * mm, y_ligne, ligne)


def generer_pdf_rapport(collaborateur: Any, saison: Any, contenu: str | None, statut: str, date_generation: datetime.date | None = None) -> io.BytesIO:
    """
    Génère le PDF du rapport d'évaluation.

    Returns:
        Un objet io.BytesIO contenant le document PDF en mémoire.
    """
    mise_en_page = mettre_en_page(collaborateur, saison, contenu, statut, date_generation)

    buffer = io.BytesIO()
    pdf = canvas.Canvas(buffer, pagesize=A4, invariant=1)
    pdf.setTitle(f"Rapport d'évaluation annuelle - {_lire(collaborateur, 'first_name')} {_lire(collaborateur, 'last_name')}")

    for page in range(1, mise_en_page.nb_pages + 1):
        for bloc in mise_en_page.blocs:
            if bloc.page == page:
                _dessiner_bloc(pdf, bloc)
        pdf.showPage()

    pdf.save()
    buffer.seek(0)
    return buffer


def _apply_border_to_range(sheet: Worksheet, start_row: int, end_row: int, start_col: int, end_col: int) -> None:
    """Applique une bordure fine autour d'une plage de cellules."""
    thin_border_side = Side(style="thin")
    box_border = Border(
        left=thin_border_side,
        right=thin_border_side,
        top=thin_border_side,
        bottom=thin_border_side,
    )

    for row_iter in sheet.iter_rows(min_row=start_row, max_row=end_row, min_col=start_col, max_col=end_col):
        for cell in row_iter:
            cell.border = box_border


def generer_export_suivi_saison(suivi: dict[str, Any]) -> io.BytesIO:
    """
    Génère un fichier Excel de suivi d'une saison : une ligne par collaborateur
    évalué, avec le nombre de feedbacks reçus et l'état de son rapport.

    Args:
        suivi: Dictionnaire {"saison": {...}, "lignes": [...]} fourni par
               `get_suivi_saison_service`.

    Returns:
        Un objet io.BytesIO contenant le fichier Excel (.xlsx) en mémoire.
    """
    saison = suivi["saison"]
    lignes = suivi["lignes"]

    workbook = openpyxl.Workbook()
    sheet: Worksheet = workbook.active
    sheet.title = "".join(c for c in f"Suivi {saison['name']}" if c.isalnum() or c in " -_").strip()[:31]

    header_font = Font(bold=True, color="FFFFFF", name="Calibri", size=11)
    header_fill = PatternFill("solid", fgColor="4F81BD")
    header_align = Alignment(horizontal="center", vertical="center")
    cell_font = Font(name="Calibri", size=11)
    left_align = Alignment(horizontal="left", vertical="center", wrap_text=True)
    center_align = Alignment(horizontal="center", vertical="center")
    title_font = Font(bold=True, name="Calibri", size=14)

    sheet.cell(row=1, column=2, value=f"Suivi des évaluations - {saison['name']}").font = title_font

    headers = ["Nom", "Prénom", "Poste", "Nb. feedbacks", "Rapport", "Rédigé par", "Mis à jour le"]
    header_row = 3
    for col_idx, header_text in enumerate(headers, start=2):
        cell = sheet.cell(row=header_row, column=col_idx, value=header_text)
        cell.font = header_font
        cell.fill = header_fill
        cell.alignment = header_align

    current_row_num = header_row + 1
    for ligne in lignes:
        mis_a_jour = ligne["mis_a_jour"]
        row_data: list[Any] = [
            ligne["last_name"],
            ligne["first_name"],
            ligne["role"],
            ligne["nb_feedbacks"],
            ligne["statut_rapport"],
            ligne["auteur_rapport"],
            mis_a_jour.strftime("%Y-%m-%d %H:%M") if mis_a_jour else "",
        ]
        for col_idx, cell_value in enumerate(row_data, start=2):
            cell = sheet.cell(row=current_row_num, column=col_idx, value=cell_value)
            cell.font = cell_font
            cell.alignment = center_align if col_idx in {5, 6, 8} else left_align
        current_row_num += 1

    if lignes:
        _apply_border_to_range(sheet, header_row, current_row_num - 1, 2, 1 + len(headers))

    largeurs = [22, 18, 20, 14, 16, 24, 18]
    for col_idx, largeur in enumerate(largeurs, start=2):
        sheet.column_dimensions[get_column_letter(col_idx)].width = largeur

    output = io.BytesIO()
    workbook.save(output)
    output.seek(0)
    return output
