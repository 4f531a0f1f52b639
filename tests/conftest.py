"""Shared fixtures: small Serpent result and detector files."""

import matplotlib

matplotlib.use("Agg")

import pytest


SAMPLE_RES = """
% Increase counter:

if (exist('idx', 'var'));
  idx = idx + 1;
else;
  idx = 1;
end;

% Version, title and date:

VERSION                   (idx, [1:  13]) = 'Serpent 2.2.1' ;
COMPILE_DATE              (idx, [1:  20]) = 'Mar 20 2025 11:47:38' ;
DEBUG                     (idx, 1)        = 0 ;
TITLE                     (idx, [1:  12]) = 'natMaterials' ;
START_DATE                (idx, [1:  24]) = 'Mon May 12 02:31:58 2025' ;
COMPLETE_DATE             (idx, [1:  24]) = 'Mon May 12 09:32:46 2025' ;

% Run parameters:

POP                       (idx, 1)        = 5000 ;
BATCHES                   (idx, 1)        = 200 ;
B1_CALCULATION            (idx, [1:  3])  = [ 0 0 0 ] ;

% Run statistics:

TOT_CPU_TIME              (idx, 1)        =  4.18753E+02 ;
RUNNING_TIME              (idx, 1)        =  4.20803E+02 ;

% Normaliation coefficient:

TOT_SRCRATE               (idx, [1:   2]) = [  5.16447E+14 0.01672 ];

% Eigenvalues:

ANA_KEFF                  (idx, [1:   6]) = [  9.93132E-01 0.00012  0.00000E+00 0.0E+00  0.00000E+00 0.0E+00 ];
SRC_MULT                  (idx, [1:   2]) = [  1.55728E+02 0.02154 ];
ANA_ALF                   (idx, [1:   2]) = [  1.63895E+01 7.6E-05 ];
ANA_EALF                  (idx, [1:   2]) = [  1.52482E-06 0.00125 ];
ADJ_NAUCHI_GEN_TIME       (idx, [1:   6]) = [  9.62566E-05 0.00063  9.62566E-05 0.00063  0.00000E+00 0.0E+00 ];

% Group constants:

INF_FLX                   (idx, [1:   4]) = [  2.09415E+19 0.00875  7.05693E+18 0.01082 ];
INF_FISS                  (idx, [1:   4]) = [  6.55413E-04 0.00042  2.72190E-03 0.00270 ];
INF_NSF                   (idx, [1:   4]) = [  1.58820E-03 0.00042  6.58932E-03 0.00270 ];
INF_KAPPA                 (idx, [1:   4]) = [  2.02292E+02 3.9E-08  2.02270E+02 3.9E-09 ];
"""

SAMPLE_DET = """
DETRoom1Det                   = [
    1    1    1    1    1    1    1    1    1    1  0.00000E+00 0.00000
];

DETFluxDet                    = [
    1    1    1    1    1    1    1    1    1    1  2.00000E-01 0.05000
    2    2    1    1    1    1    1    1    1    1  3.00000E-01 0.04000
    3    3    1    1    1    1    1    1    1    1  1.00000E-01 0.10000
    4    4    1    1    1    1    1    1    1    1  4.00000E-01 0.02000
];

DETFluxDetE                   = [
  1.00000E-01  2.00000E-01  1.50000E-01
  5.00000E-01  7.00000E-01  6.00000E-01
  7.00000E-01  1.00000E+00  8.50000E-01
  1.00000E+00  3.00000E+00  2.00000E+00
];
"""


@pytest.fixture
def results_file(tmp_path):
    path = tmp_path / "core_res.m"
    path.write_text(SAMPLE_RES)
    return path


@pytest.fixture
def detector_file(tmp_path):
    path = tmp_path / "core_det0.m"
    path.write_text(SAMPLE_DET)
    return path
